from dataclasses import dataclass
from pydantic import BaseModel, Field


@dataclass(frozen=True)
class ScanClean:
    raw: str


@dataclass(frozen=True)
class ScanInfected:
    signatures: tuple[str, ...]
    raw: str

    def __post_init__(self) -> None:
        if not self.signatures:
            raise ValueError("An infected result needs at least one signature")


@dataclass(frozen=True)
class DaemonError:
    raw: str
    reason: str


ScanOutcome = ScanClean | ScanInfected | DaemonError


class ScanResponse(BaseModel):
    is_infected: bool
    infected_files: list[str] = Field(default_factory=list)
    detected_mime_type: str | None = None

    @classmethod
    def from_outcome(cls, outcome: ScanClean | ScanInfected, mime_type: str | None) -> "ScanResponse":
        if isinstance(outcome, ScanInfected):
            return cls(
                is_infected=True,
                infected_files=list(outcome.signatures),
                detected_mime_type=mime_type,
            )
        return cls(is_infected=False, infected_files=[], detected_mime_type=mime_type)
