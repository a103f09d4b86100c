# certchain/models.py
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def format_timestamp(ts: datetime) -> str:
    """
    ISO-8601 UTC with millisecond precision and a 'Z' suffix,
    e.g. 2026-10-19T12:00:00.123Z. Naive datetimes are taken as UTC.
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


class CertificateRecord(BaseModel):
    """
    Metadata of one issued certificate. Immutable once built.
    JSON / wire names are camelCase, attributes are snake_case.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    course_name: str = Field(alias="courseName")
    institute_name: str = Field(alias="instituteName")
    pdf_ref: str = Field(alias="pdfRef")
    photo_ref: str = Field(alias="photoRef")
    created_at: datetime = Field(alias="createdAt")

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class HashBody(BaseModel):
    """Body of POST /debug/hash. `createdAt` defaults to now when omitted."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "name": "Alice Tan",
                "courseName": "Data Structures",
                "instituteName": "Tech U",
                "pdfRef": "pdf-1",
                "photoRef": "photo-1",
                "createdAt": "2026-10-19T12:00:00.000Z",
            }
        },
    )

    name: str
    course_name: str = Field(alias="courseName")
    institute_name: str = Field(alias="instituteName")
    pdf_ref: str = Field(alias="pdfRef")
    photo_ref: str = Field(alias="photoRef")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    def to_record(self) -> CertificateRecord:
        created_at = self.created_at or datetime.now(timezone.utc)
        return CertificateRecord(
            name=self.name,
            course_name=self.course_name,
            institute_name=self.institute_name,
            pdf_ref=self.pdf_ref,
            photo_ref=self.photo_ref,
            created_at=created_at,
        )
