"""
UploadedFile — one ingested spreadsheet/CSV as it moves through the pipeline.

Normalization never mutates an UploadedFile; it returns a new one
(dataclasses.replace) with normalized=True.  The dataframe may carry
internal fields (storeId, "_"-prefixed) that are not part of columns.
"""

from dataclasses import dataclass, field

import pandas as pd

from processing.registry import Template


@dataclass(frozen=True)
class UploadedFile:
    """A file's rows, visible columns and recognition result."""

    file_name: str
    dataframe: pd.DataFrame = field(default_factory=pd.DataFrame, compare=False)
    columns: tuple[str, ...] = ()
    resolved_template: Template | None = None
    match_score: float = 0.0
    normalized: bool = False

    @property
    def template_id(self) -> str | None:
        return self.resolved_template.template_id if self.resolved_template else None

    @property
    def row_count(self) -> int:
        return len(self.dataframe)
