"""HTTP routes."""

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, status

from korauto_catalog.adapters.inbound.http.schemas import (
    OptionSetResponse,
    SessionResponse,
    SetFilterRequest,
    SetPageRequest,
    SetSortRequest,
    ShareResponse,
    StatusResponse,
)
from korauto_catalog.application.dtos.catalog import ResultPage
from korauto_catalog.application.use_cases.catalog_session import CatalogSession
from korauto_catalog.domain.errors import SessionNotFound, ValidationError
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.sort_spec import SortSpec
from korauto_catalog.infrastructure.logging.logger import log_event
from korauto_catalog.infrastructure.wiring.dependencies import get_session_registry
from korauto_catalog.infrastructure.wiring.session_registry import SessionRegistry

router = APIRouter()


def _get_session(registry: SessionRegistry, session_id: str) -> CatalogSession:
    """
    Resolve a session or answer 404.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    try:
        return registry.get(session_id)
    except SessionNotFound as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=err.to_dict()) from err


def _validation_failed(err: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=err.to_dict())


async def _settle(session: CatalogSession, settle: bool) -> None:
    if settle:
        await session.wait_until_idle()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> dict[str, str]:
    """
    Health check endpoint for liveness/readiness.

    Returns:
        Health status
    """
    return {"status": "ok"}


@router.post("/sessions", status_code=status.HTTP_201_CREATED, response_model=SessionResponse)
async def create_session(
    request: Request,
    settle: bool = False,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """
    Open a catalog session.

    Query parameters other than `settle` are decoded as a shared filter
    query (see GET /sessions/{session_id}/share) and applied after start.

    Returns:
        Session snapshot
    """
    session = registry.create()
    session.start()

    params = {key: value for key, value in request.query_params.items() if key != "settle"}
    if params:
        try:
            session.hydrate(params)
        except ValidationError as err:
            registry.remove(session.session_id)
            raise _validation_failed(err) from err

    log_event(session.session_id, "http", action="create", hydrated=bool(params))
    await _settle(session, settle)
    return SessionResponse.from_snapshot(session.session_id, session.snapshot())


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    settle: bool = False,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """
    Get the current session snapshot.

    Args:
        session_id: Session identifier
        settle: Wait for pending option and dataset fetches before answering

    Returns:
        Session snapshot
    """
    session = _get_session(registry, session_id)
    await _settle(session, settle)
    return SessionResponse.from_snapshot(session_id, session.snapshot())


@router.delete("/sessions/{session_id}", status_code=status.HTTP_200_OK)
async def delete_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> dict:
    """
    Close a session and cancel its pending work.

    Returns:
        Confirmation message
    """
    try:
        registry.remove(session_id)
    except SessionNotFound as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=err.to_dict()) from err

    log_event(session_id, "http", action="delete")
    return {"session_id": session_id, "status": "closed"}


@router.put("/sessions/{session_id}/filters/{dimension}", response_model=SessionResponse)
async def set_filter(
    session_id: str,
    dimension: str,
    body: SetFilterRequest,
    settle: bool = False,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """
    Set one filter dimension; dependent dimensions below it are cleared.

    Raises:
        HTTPException: 422 on unknown dimension, malformed value or unset ancestor
    """
    session = _get_session(registry, session_id)
    try:
        session.set_filter(dimension, body.to_raw())
    except ValidationError as err:
        raise _validation_failed(err) from err

    await _settle(session, settle)
    return SessionResponse.from_snapshot(session_id, session.snapshot())


@router.delete("/sessions/{session_id}/filters/{dimension}", response_model=SessionResponse)
async def clear_filter(
    session_id: str,
    dimension: str,
    settle: bool = False,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """
    Unset one filter dimension (and its dependents).

    Raises:
        HTTPException: 422 on unknown dimension
    """
    session = _get_session(registry, session_id)
    try:
        session.clear_filter(dimension)
    except ValidationError as err:
        raise _validation_failed(err) from err

    await _settle(session, settle)
    return SessionResponse.from_snapshot(session_id, session.snapshot())


@router.delete("/sessions/{session_id}/filters", response_model=SessionResponse)
async def clear_filters(
    session_id: str,
    settle: bool = False,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """Unset every filter dimension in one transition."""
    session = _get_session(registry, session_id)
    session.clear_filters()
    await _settle(session, settle)
    return SessionResponse.from_snapshot(session_id, session.snapshot())


@router.put("/sessions/{session_id}/sort", response_model=SessionResponse)
async def set_sort(
    session_id: str,
    body: SetSortRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """
    Change the global sort order. The page index resets to 0.

    Returns:
        Session snapshot
    """
    session = _get_session(registry, session_id)
    session.set_sort(SortSpec(key=body.key, direction=body.direction))
    return SessionResponse.from_snapshot(session_id, session.snapshot())


@router.put("/sessions/{session_id}/page", response_model=SessionResponse)
async def set_page(
    session_id: str,
    body: SetPageRequest,
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    """
    Move to another page of the held dataset.

    Raises:
        HTTPException: 422 if the page index is negative
    """
    session = _get_session(registry, session_id)
    try:
        session.set_page(body.page_index)
    except ValidationError as err:
        raise _validation_failed(err) from err
    return SessionResponse.from_snapshot(session_id, session.snapshot())


@router.get("/sessions/{session_id}/page", response_model=ResultPage)
async def get_visible_page(
    session_id: str,
    settle: bool = False,
    registry: SessionRegistry = Depends(get_session_registry),
) -> ResultPage:
    """
    Get the visible page of the globally sorted dataset.

    Returns:
        Result page
    """
    session = _get_session(registry, session_id)
    await _settle(session, settle)
    return session.get_visible_page()


@router.get("/sessions/{session_id}/options/{dimension}", response_model=OptionSetResponse)
async def get_option_set(
    session_id: str,
    dimension: str,
    settle: bool = False,
    registry: SessionRegistry = Depends(get_session_registry),
) -> OptionSetResponse:
    """
    Get the option list to render for a dimension.

    Raises:
        HTTPException: 422 on unknown dimension
    """
    session = _get_session(registry, session_id)
    try:
        parsed = Dimension.parse(dimension)
    except ValidationError as err:
        raise _validation_failed(err) from err

    await _settle(session, settle)
    return OptionSetResponse.build(
        dimension=parsed.value,
        strict=session.get_strict_flag(parsed),
        degraded=parsed in session.snapshot().degraded_dimensions,
        option_set=session.get_option_set(parsed),
    )


@router.get("/sessions/{session_id}/status", response_model=StatusResponse)
async def get_status(
    session_id: str,
    settle: bool = False,
    registry: SessionRegistry = Depends(get_session_registry),
) -> StatusResponse:
    """
    Get the session health.

    Returns:
        Status, loading flag, cap flag and degraded dimensions
    """
    session = _get_session(registry, session_id)
    await _settle(session, settle)
    snapshot = session.snapshot()
    return StatusResponse(
        session_id=session_id,
        status=snapshot.status.value,
        loading=snapshot.loading,
        cap_exceeded=snapshot.cap_exceeded,
        degraded_dimensions=sorted(dimension.value for dimension in snapshot.degraded_dimensions),
    )


@router.get("/sessions/{session_id}/share", response_model=ShareResponse)
async def share_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> ShareResponse:
    """
    Encode the session's filters, sort and page as query parameters.

    Returns:
        Parameter mapping and the encoded query string
    """
    session = _get_session(registry, session_id)
    query = session.to_query()
    return ShareResponse(session_id=session_id, query=query, query_string=urlencode(query))
