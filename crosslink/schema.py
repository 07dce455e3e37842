from __future__ import annotations

from typing import Any, Dict, List

from crosslink.errors import CrossLinkUserError
from crosslink.models.dataset import Dataset, Relationship, RelationshipType

IR_VERSION = 0

_DETECTION_KEYS = {
    "sample_size",
    "min_confidence",
    "accept_confidence",
    "name_similarity_threshold",
    "name_boost",
}


def relationship_to_ir(rel: Relationship) -> Dict[str, Any]:
    return {
        "id": rel.id,
        "source_file": rel.source_file,
        "target_file": rel.target_file,
        "source_column": rel.source_column,
        "target_column": rel.target_column,
        "type": rel.type.value,
        "confidence": rel.confidence,
        "matching_rows": rel.matching_rows,
    }


def relationship_from_ir(d: Dict[str, Any]) -> Relationship:
    if not isinstance(d, dict):
        raise CrossLinkUserError(
            "E_IR_RELATIONSHIP",
            "IR relationship must be a mapping.",
            hint="Example: {source_file: a, target_file: b, source_column: id, target_column: a_id, ...}",
        )
    missing = [k for k in ("source_file", "target_file", "source_column", "target_column") if
               not isinstance(d.get(k), str) or not d.get(k)]
    if missing:
        raise CrossLinkUserError(
            "E_IR_RELATIONSHIP",
            f"IR relationship is missing required string field(s): {missing}.",
            hint=str(d),
        )
    try:
        rel_type = RelationshipType(d.get("type", RelationshipType.MANY_TO_MANY.value))
    except ValueError as e:
        raise CrossLinkUserError(
            "E_IR_RELATIONSHIP_TYPE",
            f"Unknown relationship type: {d.get('type')!r}.",
            hint="Supported: " + ", ".join(t.value for t in RelationshipType),
        ) from e

    kwargs: Dict[str, Any] = {}
    if isinstance(d.get("id"), str) and d["id"]:
        kwargs["id"] = d["id"]
    return Relationship(
        source_file=d["source_file"],
        target_file=d["target_file"],
        source_column=d["source_column"],
        target_column=d["target_column"],
        type=rel_type,
        confidence=float(d.get("confidence", 0.0)),
        matching_rows=int(d.get("matching_rows", 0)),
        **kwargs,
    )


def dataset_to_ir(ds: Dataset) -> Dict[str, Any]:
    """Dataset metadata without its rows; rows belong to the storage layer."""
    return {
        "id": ds.id,
        "name": ds.name,
        "columns": list(ds.columns),
        "row_count": ds.row_count,
        "relationships": [relationship_to_ir(r) for r in ds.relationships],
    }


def _normalize_config_ir(ir: Any) -> Dict[str, Any]:
    """Normalize a configuration IR document.

    Guarantees:
      - returns a dict with keys: crosslink, detection
      - detection only contains known keys
      - a missing version defaults to 0
    """
    if not isinstance(ir, dict):
        raise CrossLinkUserError(
            "E_IR_ROOT",
            "Config IR must be a mapping at the root.",
            hint="Expected keys: crosslink, detection.",
        )

    version = ir.get("crosslink")
    if version is None:
        version = IR_VERSION
    if version != IR_VERSION:
        raise CrossLinkUserError(
            "E_IR_VERSION",
            f"Unsupported IR version: {version!r}.",
            hint=f"Supported: crosslink: {IR_VERSION}",
        )

    detection = ir.get("detection")
    if detection is None:
        detection = {}
    if not isinstance(detection, dict):
        raise CrossLinkUserError(
            "E_IR_DETECTION",
            "Config IR 'detection' must be a mapping.",
            hint="Example: {crosslink: 0, detection: {sample_size: 1000}}",
        )

    unknown: List[str] = sorted(k for k in detection if k not in _DETECTION_KEYS)
    if unknown:
        raise CrossLinkUserError(
            "E_IR_DETECTION",
            f"Unknown detection setting(s): {unknown}.",
            hint="Known settings: " + ", ".join(sorted(_DETECTION_KEYS)),
        )

    return {"crosslink": IR_VERSION, "detection": dict(detection)}
