from dataclasses import dataclass, field

from app.records.models import DocumentRecord, ExtractedFields


@dataclass(frozen=True)
class TextRecognitionResult:
    """Flattened output of the text-recognition service."""

    text: str
    confidence: float
    word_confidences: list[float] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractionOutcome:
    """Per-record result of the extraction pipeline."""

    record: DocumentRecord
    fields: ExtractedFields | None = None
    error: str | None = None

    @property
    def record_id(self) -> str:
        return self.record.id

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    """Aggregated outcomes of ``ExtractionPipeline.process_batch``."""

    total: int
    outcomes: dict[str, ExtractionOutcome] = field(default_factory=dict)
    processed: int = 0

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes.values() if outcome.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes.values() if not outcome.succeeded)

    @property
    def results(self) -> dict[str, ExtractedFields]:
        """Extracted fields of the successful records, keyed by record id."""
        return {
            record_id: outcome.fields
            for record_id, outcome in self.outcomes.items()
            if outcome.succeeded and outcome.fields is not None
        }

    def summary(self) -> str:
        return f"{self.succeeded} succeeded, {self.failed} failed"
