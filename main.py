# main.py
from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError

from batches import CodeGroup, copy_values, group_codes
from campaign_rules import effective_status, is_activatable, usage_summary
from config import LOG_LEVEL
from db import SessionLocal
from errors import (
    CapacityExceededError,
    CodeEngineError,
    ConflictError,
    ContentionError,
    GenerationExhaustedError,
    InactiveCampaignError,
    InvalidCountError,
    NotFoundError,
)
from schemas import (
    AdmitIn,
    CampaignSnapshot,
    CampaignStatusOut,
    ClaimIn,
    Code,
    CodeGroupOut,
    CodeOut,
    DeleteIn,
    DeleteResult,
    GenerateIn,
)
from service import CodeService
from store import CampaignStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=LOG_LEVEL)
    yield


app = FastAPI(title="Campaign Codes Service", version="1.0.0", lifespan=lifespan)

_service = CodeService(CampaignStore(SessionLocal))


def get_service() -> CodeService:
    return _service


# --------------------------------------------------------------------
# Error translation
# --------------------------------------------------------------------

_STATUS_BY_ERROR = [
    (NotFoundError, 404),
    (InvalidCountError, 422),
    (InactiveCampaignError, 422),
    (CapacityExceededError, 409),
    (ConflictError, 409),
    (ContentionError, 409),
    (GenerationExhaustedError, 503),
]


def http_error(exc: CodeEngineError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = 400
    logger.info("Rejected %s: %s", exc.transition or "request", exc.message, extra=exc.context())
    return HTTPException(status_code=status_code, detail=exc.code)


def _retry_once_on_contention(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except ContentionError:
        logger.info("Retrying %s once after contention", fn.__name__)
        return fn(*args, **kwargs)


# --------------------------------------------------------------------
# Health check
# --------------------------------------------------------------------

@app.get("/healthz")
async def healthz():
    return {"ok": True}


# --------------------------------------------------------------------
# Campaign status
# --------------------------------------------------------------------

@app.get("/campaigns/{campaign_id}", response_model=CampaignStatusOut)
def campaign_status(campaign_id: str, service: CodeService = Depends(get_service)):
    try:
        campaign = service.get_campaign(campaign_id)
    except CodeEngineError as exc:
        raise http_error(exc)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="server_error")

    return CampaignStatusOut(
        id=campaign.id,
        kind=campaign.kind,
        name=campaign.name,
        active=campaign.active,
        activatable=is_activatable(campaign, service.clock()),
        usage=usage_summary(campaign),
    )


# --------------------------------------------------------------------
# Codes
# --------------------------------------------------------------------

def _group_out(group: CodeGroup, campaign: CampaignSnapshot, service: CodeService) -> CodeGroupOut:
    now = service.clock()
    return CodeGroupOut(
        key=group.key,
        is_batch=group.is_batch,
        note=group.note,
        issued_at=group.issued_at,
        issued_by_name=group.issued_by_name,
        values_text=copy_values(group),
        deletable_ids=group.deletable_ids,
        codes=[
            CodeOut(code=code, display_status=effective_status(code, campaign, now))
            for code in group.codes
        ],
    )


@app.get("/campaigns/{campaign_id}/codes", response_model=list[CodeGroupOut])
def list_codes(
    campaign_id: str,
    issued_by: str | None = Query(None, description="only codes issued by this actor id"),
    service: CodeService = Depends(get_service),
):
    try:
        campaign = service.get_campaign(campaign_id)
    except CodeEngineError as exc:
        raise http_error(exc)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="server_error")

    return [_group_out(g, campaign, service) for g in group_codes(campaign.codes, issued_by_id=issued_by)]


@app.post("/campaigns/{campaign_id}/codes", response_model=list[Code], status_code=201)
def generate_codes(campaign_id: str, body: GenerateIn, service: CodeService = Depends(get_service)):
    try:
        return service.generate_codes(campaign_id, body.count, body.note, body.issuer)
    except CodeEngineError as exc:
        raise http_error(exc)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="server_error")


@app.post("/campaigns/{campaign_id}/codes/claim", response_model=Code)
def claim_code(campaign_id: str, body: ClaimIn, service: CodeService = Depends(get_service)):
    try:
        return _retry_once_on_contention(
            service.claim_code, campaign_id, body.code, body.claimant, vip=body.vip
        )
    except CodeEngineError as exc:
        raise http_error(exc)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="server_error")


@app.post("/campaigns/{campaign_id}/codes/{code_id}/admit", response_model=Code)
def admit_code(campaign_id: str, code_id: str, body: AdmitIn, service: CodeService = Depends(get_service)):
    try:
        return _retry_once_on_contention(
            service.admit_code, campaign_id, code_id, body.admitter, vip=body.vip
        )
    except CodeEngineError as exc:
        raise http_error(exc)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="server_error")


@app.post("/campaigns/{campaign_id}/codes/delete", response_model=DeleteResult)
def delete_codes(campaign_id: str, body: DeleteIn, service: CodeService = Depends(get_service)):
    try:
        return service.delete_codes(campaign_id, body.code_ids, body.restrict_to_issuer)
    except CodeEngineError as exc:
        raise http_error(exc)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="server_error")


@app.delete("/campaigns/{campaign_id}/codes/{code_id}", response_model=Code)
def delete_code(campaign_id: str, code_id: str, service: CodeService = Depends(get_service)):
    try:
        return service.delete_code(campaign_id, code_id)
    except CodeEngineError as exc:
        raise http_error(exc)
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="server_error")
