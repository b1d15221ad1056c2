"""FastAPI router for the damage calculator."""

from __future__ import annotations

from fastapi import APIRouter

from pokevgc.api.contracts import ApiErrorResponse, DamageCalcResponse
from pokevgc.battle.calculator import DamageCalculator
from pokevgc.battle.models import DamageCalcRequest


def create_battle_router(calculator: DamageCalculator) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["battle"])

    @router.post(
        "/dmgcalc",
        response_model=DamageCalcResponse,
        responses={400: {"model": ApiErrorResponse}, 500: {"model": ApiErrorResponse}},
    )
    def damage_calc(req: DamageCalcRequest) -> DamageCalcResponse:
        """Compute expected damage of ``move`` from ``attacker`` against ``defender``."""
        result = calculator.compute(
            req.attacker, req.defender, req.move, req.attacker_level
        )
        return DamageCalcResponse(**result.model_dump())

    return router
