"""Data structures for flattened statistics samples."""
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class Sample:
    """A single flattened statistic with labels."""
    name: str
    labels: Dict[str, str] = field(default_factory=dict)
    value: float = 0.0

    def label_key(self) -> str:
        """Generate a stable key from sorted labels."""
        items = sorted(self.labels.items())
        return ",".join(f"{k}={v}" for k, v in items)

    def series_key(self) -> str:
        """Key identifying the series (name plus labels) within one scrape."""
        return f"{self.name}|{self.label_key()}"
