# gfrecipes/app/deps.py (singletons exposed as FastAPI dependencies)

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from gfrecipes.app.config import settings
from gfrecipes.app.infra.db.base import RecordStore
from gfrecipes.app.infra.db.memory_store import InMemoryRecordStore
from gfrecipes.app.infra.db.supabase_store import SupabaseRecordStore
from gfrecipes.app.infra.extraction.base import ExtractionAdapter
from gfrecipes.app.infra.extraction.gemini_provider import GeminiExtractionAdapter
from gfrecipes.app.infra.extraction.static_provider import StaticExtractionAdapter
from gfrecipes.app.services.recipe_pipeline import RecipePipeline
from gfrecipes.app.services.substitution_engine import SubstitutionEngine, get_catalog
from gfrecipes.services.gemini_client import GeminiClient

_client: Client | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


@lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    if settings.STORE_BACKEND == "memory":
        return InMemoryRecordStore()
    return SupabaseRecordStore(get_supabase())


@lru_cache(maxsize=1)
def get_extractor() -> ExtractionAdapter:
    if settings.EXTRACTION_PROVIDER == "static":
        return StaticExtractionAdapter()

    client = GeminiClient(
        api_key=settings.GEMINI_API_KEY or "",
        model_name=settings.GEMINI_MODEL,
        timeout_seconds=settings.EXTRACTION_TIMEOUT_SECONDS,
    )
    return GeminiExtractionAdapter(
        client,
        mode=settings.EXTRACTION_MODE,
        timeout_seconds=settings.EXTRACTION_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_substitution_engine() -> SubstitutionEngine:
    return SubstitutionEngine(
        get_catalog(settings.CATALOG_REGION, settings.SUBSTITUTION_CATALOG_PATH)
    )


def get_pipeline() -> RecipePipeline:
    return RecipePipeline(
        store=get_record_store(),
        extractor=get_extractor(),
        engine=get_substitution_engine(),
    )


auth_scheme = HTTPBearer(auto_error=False)

class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None

async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    supa: Client = Depends(get_supabase),
) -> CurrentUser:
    """
    Receives Authorization: Bearer <access_token> from Supabase,
    validates it against GoTrue and returns minimal user data.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    token = cred.credentials
    try:
        res = supa.auth.get_user(token)
        user = res.user
        if not user:
            raise HTTPException(status_code=401, detail="Invalid token")

        name = None
        meta = getattr(user, "user_metadata", None) or {}
        if isinstance(meta, dict):
            name = meta.get("name")

        return CurrentUser(id=str(user.id), email=user.email, name=name)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid/expired token")
