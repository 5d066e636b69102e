from fastapi import APIRouter

from . import flows, health


def register_routes(router: APIRouter):
    router.include_router(health.router)
    router.include_router(flows.router)
