from __future__ import annotations

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from crosslink.errors import CrossLinkUserError
from crosslink.schema import IR_VERSION, _normalize_config_ir

FULL = "full"
SampleSize = Union[int, str]


@dataclass(frozen=True)
class DetectionConfig:
    """Thresholds and sampling policy for relationship detection.

    sample_size: row cap per dataset for the stratified sample, or "full" to compare every row.
    min_confidence: the detector never emits a relationship below this.
    accept_confidence: the builder only attaches relationships strictly above this.
    """
    sample_size: SampleSize = 1000
    min_confidence: float = 0.3
    accept_confidence: float = 0.5
    name_similarity_threshold: float = 0.6
    name_boost: float = 1.2

    def __post_init__(self) -> None:
        s = self.sample_size
        if s != FULL and (isinstance(s, bool) or not isinstance(s, int) or s < 1):
            raise CrossLinkUserError(
                "E_CONFIG_SAMPLE_SIZE",
                f"sample_size must be a positive integer or 'full', got {s!r}.",
                hint="Example: DetectionConfig(sample_size=1000) or DetectionConfig(sample_size='full')",
            )
        for name in ("min_confidence", "accept_confidence", "name_similarity_threshold"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, (int, float)) or not 0.0 <= v <= 1.0:
                raise CrossLinkUserError(
                    "E_CONFIG_THRESHOLD",
                    f"{name} must be a number between 0 and 1, got {v!r}.",
                    hint=f"Example: DetectionConfig({name}=0.5)",
                )
        if isinstance(self.name_boost, bool) or not isinstance(self.name_boost, (int, float)) or self.name_boost < 1.0:
            raise CrossLinkUserError(
                "E_CONFIG_BOOST",
                f"name_boost must be a number >= 1.0, got {self.name_boost!r}.",
                hint="Use 1.0 to disable the column-name boost.",
            )

    @property
    def is_full(self) -> bool:
        return self.sample_size == FULL

    def to_ir(self) -> Dict[str, Any]:
        return {"crosslink": IR_VERSION, "detection": asdict(self)}

    @classmethod
    def from_ir(cls, ir: Dict[str, Any]) -> "DetectionConfig":
        ir = _normalize_config_ir(ir)
        return cls(**ir["detection"])

    def to_yaml(self, path: Optional[Union[str, Path]] = None) -> str:
        """Dump IR to YAML string. If `path` is provided, also write the file."""
        text = yaml.safe_dump(self.to_ir(), sort_keys=False)
        if path is not None:
            Path(path).write_text(text, encoding="utf-8")
        return text

    @classmethod
    def from_yaml(cls, text_or_path: Union[str, Path]) -> "DetectionConfig":
        """Load a config from a YAML string or file path."""
        if isinstance(text_or_path, Path) or (
                isinstance(text_or_path, str) and "\n" not in text_or_path and Path(text_or_path).is_file()
        ):
            text = Path(text_or_path).read_text(encoding="utf-8")
        else:
            text = str(text_or_path)
        try:
            ir = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise CrossLinkUserError(
                "E_YAML_PARSE",
                f"Failed to parse YAML: {e}",
                hint="Check indentation and quoting.",
            ) from e
        return cls.from_ir(ir if ir is not None else {})
