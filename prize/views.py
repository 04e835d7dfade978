from __future__ import annotations

import uuid

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from ledger.identity import Identity, get_policy
from ledger.locks import identity_claim_lock
from promo_backend.http import claim_guard, parse_body, require_text, require_uuid

from .services import (
    AllocationResult,
    allocate,
    allocate_fixed,
    get_active_store,
    list_available_prizes,
)


def _claim_response(result: AllocationResult) -> JsonResponse:
    payload = {"success": True, "message": "Prize delivered."}
    payload.update(result.to_payload())
    return JsonResponse(payload, json_dumps_params={"ensure_ascii": False})


@csrf_exempt
@require_http_methods(["POST"])
@claim_guard
def claim_prize(request):
    payload = parse_body(request)
    store_id = require_uuid(payload, "storeId", "store_id")
    campaign = require_text(payload, "campaign")
    identity = Identity.from_payload(payload)
    dedup_key = get_policy().dedup_key(identity)

    with identity_claim_lock(campaign, dedup_key):
        result = allocate(store_id, campaign, identity, photo_url=payload.get("photoUrl"))
    return _claim_response(result)


@csrf_exempt
@require_http_methods(["POST"])
@claim_guard
def claim_fixed_prize(request):
    payload = parse_body(request)
    store_id = require_uuid(payload, "storeId", "store_id")
    prize_id = require_uuid(payload, "prizeId", "prize_id")
    campaign = require_text(payload, "campaign")
    identity = Identity.from_payload(payload)
    dedup_key = get_policy().dedup_key(identity)

    with identity_claim_lock(campaign, dedup_key):
        result = allocate_fixed(
            store_id, prize_id, campaign, identity, photo_url=payload.get("photoUrl")
        )
    return _claim_response(result)


@require_http_methods(["GET"])
@claim_guard
def store_prizes(request, store_id: uuid.UUID):
    store = get_active_store(store_id)
    prizes = [prize.to_payload() for prize in list_available_prizes(store.pk)]
    return JsonResponse(
        {"success": True, "store_id": str(store_id), "prizes": prizes},
        json_dumps_params={"ensure_ascii": False},
    )

