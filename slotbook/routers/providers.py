"""Provider directory and profile upsert."""
from fastapi import APIRouter, Depends

from slotbook.dependencies import get_profile_service, require_provider
from slotbook.schemas.providers import ProfileUpsert, ProviderResponse
from slotbook.services.auth import TokenClaims
from slotbook.services.profiles import ProfileService, ProviderView

router = APIRouter(prefix="/providers", tags=["providers"])


def _to_response(view: ProviderView) -> ProviderResponse:
    return ProviderResponse(
        account_id=view.account_id,
        first_name=view.first_name,
        last_name=view.last_name,
        expertise=view.expertise,
        price_per_session=view.price,
    )


@router.get("", response_model=list[ProviderResponse])
def list_providers(profiles: ProfileService = Depends(get_profile_service)):
    return [_to_response(v) for v in profiles.list_providers()]


@router.get("/{provider_id}/profile", response_model=ProviderResponse)
def get_profile(provider_id: int, profiles: ProfileService = Depends(get_profile_service)):
    return _to_response(profiles.get(provider_id))


@router.put("/me/profile", response_model=ProviderResponse)
def upsert_profile(
    data: ProfileUpsert,
    claims: TokenClaims = Depends(require_provider),
    profiles: ProfileService = Depends(get_profile_service),
):
    return _to_response(profiles.upsert(claims.account_id, claims.role, data.expertise, data.price_per_session))
