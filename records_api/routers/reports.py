from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Request

from records_api.models.responses import AppointmentReport, BillingStatusTotal, NoteAck
from records_api.services.reports import ReportService

router = APIRouter(prefix="/reports", tags=["Reports"])


def get_reports(request: Request) -> ReportService:
    return request.app.state.registry.reports


Reports = Annotated[ReportService, Depends(get_reports)]


@router.get("/appointments", response_model=AppointmentReport)
async def appointment_report(reports: Reports):
    """Total number of appointments; 0 when the store is unavailable."""
    return await reports.appointments_summary()


@router.get("/billing", response_model=list[BillingStatusTotal])
async def billing_report(reports: Reports):
    """Invoice amounts summed per status."""
    return await reports.billing_by_status()


@router.get("/providers/productivity")
async def provider_productivity(reports: Reports) -> list:
    return await reports.provider_productivity()


@router.get("/labs/turnaround")
async def lab_turnaround(reports: Reports) -> list:
    return await reports.lab_turnaround()


@router.get("/patient-growth")
async def patient_growth(reports: Reports) -> list:
    return await reports.patient_growth()


@router.get("/{report_id}/history")
async def report_history(report_id: str) -> list:
    return []


@router.post("/{report_id}/notes", response_model=NoteAck)
async def add_report_note(report_id: str, payload: Annotated[Any, Body()] = None):
    return NoteAck()


@router.get("/{report_id}/related")
async def report_related(report_id: str) -> list:
    return []
