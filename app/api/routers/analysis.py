"""
app/api/routers/analysis.py

BA cluster analysis HTTP endpoints.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, UploadFile, status

from app.api.dependencies import get_analysis_controller, get_csv_upload
from app.domain.analysis_state import AnalysisSnapshot, AppState
from app.schemas.analysis import AnalysisSnapshotResponse
from app.services.analysis_controller import AnalysisController, InvalidStateTransitionError
from app.services.dashboard_service import DEFAULT_TOP_LIMIT, build_dashboard
from app.services.report_export_service import ReportExportService

router = APIRouter(prefix="/analysis", tags=["analysis"])


def _require_success(controller: AnalysisController) -> AnalysisSnapshot:
    snapshot = controller.snapshot()
    if snapshot.state is not AppState.SUCCESS or snapshot.analysis is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"No completed analysis available (state: {snapshot.state.value}).",
        )
    return snapshot


@router.post("/upload", response_model=AnalysisSnapshotResponse)
async def upload_csv(
    file: UploadFile = Depends(get_csv_upload),
    controller: AnalysisController = Depends(get_analysis_controller),
) -> AnalysisSnapshotResponse:
    """
    Aggregate one CSV upload and run the cluster analysis on it.

    Parse and analysis failures are reported in the returned snapshot
    with ``state == "error"``.
    """

    try:
        snapshot = await controller.submit_file(file)
    except InvalidStateTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    finally:
        await file.close()

    return AnalysisSnapshotResponse.from_snapshot(snapshot)


@router.get("/state", response_model=AnalysisSnapshotResponse)
def get_state(
    controller: AnalysisController = Depends(get_analysis_controller),
) -> AnalysisSnapshotResponse:
    return AnalysisSnapshotResponse.from_snapshot(controller.snapshot())


@router.post("/reset", response_model=AnalysisSnapshotResponse)
def reset(
    controller: AnalysisController = Depends(get_analysis_controller),
) -> AnalysisSnapshotResponse:
    """
    Discard the current cycle and return to idle.
    """

    try:
        snapshot = controller.reset()
    except InvalidStateTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    return AnalysisSnapshotResponse.from_snapshot(snapshot)


@router.get("/dashboard")
def get_dashboard(
    limit: int = Query(default=DEFAULT_TOP_LIMIT, ge=1, le=100),
    controller: AnalysisController = Depends(get_analysis_controller),
) -> dict[str, Any]:
    """
    KPI cards, cluster assignment, cluster shares and top business areas.
    """

    snapshot = _require_success(controller)
    return build_dashboard(snapshot.aggregated, snapshot.analysis, limit=limit)


@router.get("/export")
def export_report(
    export_format: Literal["csv", "json"] = Query(default="json", alias="format"),
    controller: AnalysisController = Depends(get_analysis_controller),
) -> Response:
    """
    Download the completed analysis as CSV or JSON.
    """

    snapshot = _require_success(controller)
    exporter = ReportExportService(snapshot.aggregated, snapshot.analysis)

    if export_format == "csv":
        return Response(
            content=exporter.to_csv(),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="ba_clusters.csv"'},
        )
    return Response(
        content=exporter.to_json(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="ba_clusters.json"'},
    )
