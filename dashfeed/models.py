from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

CellValue = Optional[Union[float, str]]


class SchemaResponse(BaseModel):
    row_count: int = 0
    columns: List[str] = Field(default_factory=list)


class DataResponse(SchemaResponse):
    updated_at: datetime
    mode: Literal["sections", "flat"] = Field(
        default="sections",
        description="'sections' for Tipo_Dato block exports, 'flat' for plain delimited files",
    )
    rows: List[Dict[str, CellValue]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    ok: bool = True
