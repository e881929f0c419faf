"""Directive parsing and vocabulary endpoints."""

from fastapi import APIRouter

from emo_assistant.directives import DirectiveExtractor, parse_trailer
from emo_assistant.vocabulary import CATEGORY_VOCABULARIES

from .models import ParseBody, ParsedReply

router = APIRouter()


@router.post("/directives/parse", response_model=ParsedReply)
async def parse_directives(body: ParseBody):
    """Split a raw reply into trailing directives, clean text and inline directives."""
    trailer = parse_trailer(body.text)
    extractor = DirectiveExtractor()
    clean_text = extractor.parse(trailer.body)
    return ParsedReply(
        trailer=trailer,
        clean_text=clean_text,
        directives=extractor.directives,
    )


@router.get("/vocabulary")
async def get_vocabulary():
    """Canonical values and corrections for every directive category."""
    return {
        category: {
            "values": vocab.sorted_values(),
            "corrections": dict(vocab.corrections),
        }
        for category, vocab in CATEGORY_VOCABULARIES.items()
    }
