from __future__ import annotations

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from promo_backend.http import claim_guard, parse_body, require_text, require_uuid

from .identity import Identity, get_policy
from .locks import identity_claim_lock
from .services import check_eligibility, register_participant


@require_http_methods(["GET"])
@claim_guard
def eligibility(request):
    """Report whether the participant described by the query string may claim."""

    campaign = require_text(request.GET, "campaign")
    identity = Identity.from_payload(request.GET)
    result = check_eligibility(campaign, identity)
    payload = {"success": True}
    payload.update(result.to_payload())
    return JsonResponse(payload, json_dumps_params={"ensure_ascii": False})


@csrf_exempt
@require_http_methods(["POST"])
@claim_guard
def register(request):
    payload = parse_body(request)
    campaign = require_text(payload, "campaign")
    identity = Identity.from_payload(payload)
    store_id = None
    if payload.get("storeId") or payload.get("store_id"):
        store_id = require_uuid(payload, "storeId", "store_id")

    with identity_claim_lock(campaign, get_policy().dedup_key(identity)):
        claim = register_participant(
            campaign, identity, store_id=store_id, photo_url=payload.get("photoUrl")
        )
    return JsonResponse(
        {"success": True, "message": "Participant registered.", "claim": claim.to_payload()},
        status=201,
    )
