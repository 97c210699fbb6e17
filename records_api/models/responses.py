from pydantic import BaseModel, Field


class CountResponse(BaseModel):
    count: int


class NoteAck(BaseModel):
    status: str = "note added"


class FieldErrorDetail(BaseModel):
    field: str
    constraint: str
    message: str


class ErrorResponse(BaseModel):
    error: str
    details: list[FieldErrorDetail] | None = None


class AppointmentReport(BaseModel):
    total: int = 0


class BillingStatusTotal(BaseModel):
    id: str = Field(alias="_id")
    total: float = 0.0
