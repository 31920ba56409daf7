from typing import Optional, List, Dict, Any
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# =========================
# Enums
# =========================
class ChartKind(str, Enum):
    BAR = "bar"
    PIE = "pie"
    LINE = "line"
    DOUGHNUT = "doughnut"


# =========================
# SCHEMA DESCRIPTION
# =========================
class ColumnInfo(BaseModel):
    name: str
    type: str

    model_config = ConfigDict(frozen=True)


class TableInfo(BaseModel):
    name: str
    columns: List[ColumnInfo] = []
    is_view: bool = False

    model_config = ConfigDict(frozen=True)


class SchemaResponse(BaseModel):
    schema_text: str = Field(alias="schema")
    tables: List[str]

    model_config = ConfigDict(populate_by_name=True)


class UploadResponse(BaseModel):
    message: str
    tables: List[str]


class TablePreview(BaseModel):
    name: str
    data: List[Dict[str, Any]]


# =========================
# GENERATION
# =========================
class GenerationRequest(BaseModel):
    temperature: float = Field(1.0, ge=0.0, le=2.0)
    max_tokens: int = Field(2048, ge=1, le=8192, alias="maxTokens")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class GenerationResult(BaseModel):
    message: str
    table: Optional[str] = None
    preview: Optional[List[Dict[str, Any]]] = None


# =========================
# NATURAL LANGUAGE QUERY
# =========================
class QueryRequest(BaseModel):
    prompt: str


class QueryResult(BaseModel):
    sql: str
    rows: List[Dict[str, Any]] = Field(default_factory=list, alias="result")
    is_chart: bool = Field(False, alias="isChart")
    chart_kind: Optional[ChartKind] = Field(None, alias="chartType")

    model_config = ConfigDict(populate_by_name=True, frozen=True)
