from app.extraction.base import BaseFieldExtractor
from app.extraction.factory import FieldExtractorFactory, TextRecognizerFactory
from app.extraction.field_extractor import FieldExtractor
from app.extraction.pipeline import ExtractionPipeline

__all__ = [
    "BaseFieldExtractor",
    "ExtractionPipeline",
    "FieldExtractor",
    "FieldExtractorFactory",
    "TextRecognizerFactory",
]
