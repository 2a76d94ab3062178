from fastapi import Request

from app.config import Settings
from app.gateways.base import BaseGateway
from app.store.base import TransactionStore


def get_store(request: Request) -> TransactionStore:
    return request.app.state.store


def get_gateway(request: Request) -> BaseGateway:
    return request.app.state.gateway


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
