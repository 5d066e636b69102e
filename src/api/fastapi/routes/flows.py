from fastapi import APIRouter, Request

from src.core.config import settings
from src.flow.session import EditorSession
from src.flow.validator import GraphValidator
from src.models.schemas.flow_validation import ValidationResult
from src.models.schemas.responses import (
    CatalogTargetsResponse,
    ContainerPlacement,
    LayoutResponse,
    NormalizeResponse,
    StepPlacement,
)
from src.services.catalog import CatalogService
from src.utils.exception import BadRequestException
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/flows", tags=["flows"])


async def _read_text(request: Request) -> str:
    body = await request.body()
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise BadRequestException(f"request body is not UTF-8 text: {e.reason}") from e


@router.post("/validate", response_model=ValidationResult)
async def validate_flow(request: Request) -> ValidationResult:
    """Validate raw flow JSON exactly as it would be persisted."""
    content = await _read_text(request)
    result = GraphValidator().validate_json(content)
    logger.info(f"Validated flow: valid={result.is_valid}")
    return result


@router.post("/normalize", response_model=NormalizeResponse)
async def normalize_flow(request: Request) -> NormalizeResponse:
    """Rebuild the next chain and key order from the document's container order."""
    session = EditorSession()
    session.load_json(await _read_text(request))
    return NormalizeResponse(
        success=True,
        document=session.document,
        validation=session.validate(),
    )


@router.post("/layout", response_model=LayoutResponse)
async def layout_flow(request: Request) -> LayoutResponse:
    session = EditorSession()
    session.load_json(await _read_text(request))
    return LayoutResponse(
        success=True,
        containers=[
            ContainerPlacement(
                full_key=container.full_key,
                x=container.x,
                y=container.y,
                width=container.width,
                height=container.height,
                steps=[StepPlacement(step_key=s.step_key, x=s.x, y=s.y) for s in container.steps],
            )
            for container in session.store.containers
        ],
    )


@router.get("/catalog/targets", response_model=CatalogTargetsResponse)
async def list_catalog_targets(request: Request) -> CatalogTargetsResponse:
    """Load every catalog file and list the target names found."""
    service = CatalogService(request.app.state.catalog_client, settings.CATALOG_MAX_CONCURRENCY)
    catalog, report = await service.load_all_targets()
    return CatalogTargetsResponse(
        success=not report.errors,
        targets=catalog.names,
        errors=report.errors,
    )
