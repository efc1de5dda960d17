# routers/connection_routes.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from schemas.portfolio import Provider
from services.brokers.errors import BrokerAuthError, BrokerError
from services.connection_service import ConnectionStore, get_connection_store
from services.current_user import get_current_user_id
from services.portfolio.sources import authenticate_provider
from utils.crypto import CredentialsError

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    provider: Provider
    connected: bool
    updated_at: Optional[datetime] = None


@router.get("", response_model=List[ConnectionOut])
def list_connections(
    user_id: str = Depends(get_current_user_id),
    store: ConnectionStore = Depends(get_connection_store),
):
    return [ConnectionOut(provider=p, connected=True) for p in store.list_providers(user_id)]


@router.get("/{provider}", response_model=ConnectionOut)
def get_connection(
    provider: Provider,
    user_id: str = Depends(get_current_user_id),
    store: ConnectionStore = Depends(get_connection_store),
):
    row = store.get_connection(user_id, provider)
    if row is None:
        return ConnectionOut(provider=provider, connected=False)
    return ConnectionOut(provider=provider, connected=True, updated_at=row.updated_at)


@router.put("/{provider}", response_model=ConnectionOut)
async def connect(
    provider: Provider,
    payload: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    store: ConnectionStore = Depends(get_connection_store),
):
    """Validate the credentials against the broker, then store them encrypted."""
    try:
        credentials = await authenticate_provider(provider, payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_input=False))
    except BrokerAuthError:
        raise HTTPException(status_code=400, detail=f"{provider.upper()} rejected the credentials")
    except BrokerError as e:
        logger.warning("connect_failed provider=%s error=%s", provider, e)
        raise HTTPException(status_code=502, detail=f"{provider.upper()} is unavailable. Please try again.")

    try:
        row = store.save_credentials(user_id, provider, credentials)
    except CredentialsError as e:
        logger.error("connect_store_failed provider=%s error=%s", provider, e)
        raise HTTPException(status_code=500, detail="Credential storage is not configured")
    return ConnectionOut(provider=provider, connected=True, updated_at=row.updated_at)


@router.delete("/{provider}", status_code=204)
def disconnect(
    provider: Provider,
    user_id: str = Depends(get_current_user_id),
    store: ConnectionStore = Depends(get_connection_store),
):
    if not store.delete(user_id, provider):
        raise HTTPException(status_code=404, detail=f"{provider.upper()} account not connected")
    return Response(status_code=204)
