from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadedImage(BaseModel):
    id: str
    name: str
    original_size_bytes: int
    mime_type: str
    encoded_content: str
    approx_size_bytes: int
    width: int
    height: int

    model_config = ConfigDict(frozen=True)

    @property
    def encoded_mime_type(self) -> str:
        """MIME type carried by the data URI, which may differ from the source file's."""
        return self.encoded_content[len("data:") :].split(";", 1)[0]

    @property
    def base64_data(self) -> str:
        """Payload of the data URI without the ``data:<mime>;base64,`` prefix."""
        return self.encoded_content.split(",", 1)[1]


class AnalysisResult(BaseModel):
    # Model output is advisory; nothing here is guaranteed present or well-typed.
    product_name: Any = Field(None, alias="productName")
    brand: Any = None
    category: Any = None
    condition: Any = None
    specifications: Any = None
    key_features: Any = Field(None, alias="keyFeatures")
    suggested_title: Any = Field(None, alias="suggestedTitle")
    description: Any = None
    estimated_value: Any = Field(None, alias="estimatedValue")

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)


class SpecificationRow(BaseModel):
    label: str
    value: str


class ListingDocument(BaseModel):
    title: str
    specification_rows: List[SpecificationRow]
    description: str
    complete_html: str

    model_config = ConfigDict(frozen=True)

    def specification_text(self) -> str:
        lines = ["Specification\tDetails"]
        lines.extend(f"{row.label}\t{row.value}" for row in self.specification_rows)
        return "\n".join(lines)


class ImageSummary(BaseModel):
    id: str
    name: str
    mime_type: str
    original_size_bytes: int
    approx_size_bytes: int
    size_display: str
    width: int
    height: int


class NotificationRead(BaseModel):
    kind: str
    message: str
    created_at: datetime


class SessionRead(BaseModel):
    state: str
    readiness: str
    can_analyze: bool
    model: str
    progress: Optional[str] = None
    images: List[ImageSummary]
    notifications: List[NotificationRead]
    has_listing: bool


class CredentialsUpdate(BaseModel):
    api_key: str
    model: Optional[str] = None
