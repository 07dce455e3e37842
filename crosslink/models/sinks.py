from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

import petl as etl

from crosslink.errors import CrossLinkUserError
from crosslink.util import Row, _infer_type_from_uri, column_union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sink:
    uri: str
    type: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.uri, os.PathLike):
            object.__setattr__(self, "uri", os.fspath(self.uri))
        inferred = self.type or _infer_type_from_uri(self.uri)
        object.__setattr__(self, "type", inferred)
        if self.type is None:
            raise CrossLinkUserError(
                "E_SINK_TYPE_INFER",
                f"Could not infer Sink type from uri='{self.uri}'.",
                hint="Provide type explicitly, e.g. Sink('out.data', type='csv').",
            )

        if self.type != "csv":
            raise CrossLinkUserError(
                "E_SINK_TYPE_UNSUPPORTED",
                f"Sink type '{self.type}' is not supported.",
                hint="Currently supported sink types: csv.",
            )

        # Fail fast: ensure the output directory exists and is writable before anything is joined.
        parent = os.path.dirname(self.uri) or "."
        if not os.path.isdir(parent):
            raise CrossLinkUserError(
                "E_SINK_DIR_NOT_FOUND",
                f"Output directory does not exist: '{parent}'.",
                hint="Create the directory or choose a different output path.",
            )
        if not os.access(parent, os.W_OK):
            raise CrossLinkUserError(
                "E_SINK_NOT_WRITABLE",
                f"Output directory is not writable: '{parent}'.",
                hint="Check permissions or choose a different output location.",
            )

    def write(self, table) -> None:
        if self.type != "csv":
            raise CrossLinkUserError(
                "E_SINK_WRITE_UNSUPPORTED",
                f"Sink type '{self.type}' cannot be written.",
                hint="Currently supported sink types: csv.",
            )
        try:
            etl.tocsv(table, self.uri, **self.options)
        except FileNotFoundError as e:
            parent = os.path.dirname(self.uri) or "."
            raise CrossLinkUserError(
                "E_SINK_DIR_NOT_FOUND",
                f"Output directory does not exist: '{parent}'.",
                hint="Create the directory or choose a different output path.",
            ) from e
        except PermissionError as e:
            parent = os.path.dirname(self.uri) or "."
            raise CrossLinkUserError(
                "E_SINK_NOT_WRITABLE",
                f"Cannot write to output directory: '{parent}'.",
                hint="Check permissions or choose a different output location.",
            ) from e
        except Exception as e:
            raise CrossLinkUserError(
                "E_SINK_WRITE",
                f"Could not write sink '{self.uri}': {type(e).__name__}: {e}",
                hint="Check file permissions and Sink options (delimiter/encoding).",
            ) from e

    def write_rows(self, rows: Sequence[Row], columns: Optional[Sequence[str]] = None) -> None:
        """Write row-records (e.g. joined rows); the header defaults to every key seen, in first-seen order."""
        header = list(columns) if columns is not None else column_union(rows)
        self.write(etl.fromdicts(list(rows), header=header))
        logger.info("wrote %d row(s) to %s", len(rows), self.uri)

    def __str__(self) -> str:
        return f'Sink("{self.uri}")  kind={self.type}'
