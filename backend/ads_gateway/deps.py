from fastapi import Request
from ads_gateway.config import Settings
from ads_gateway.services.forwarder import AdsForwarder
from ads_gateway.services.token_provider import TokenProvider


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_provider(request: Request) -> TokenProvider:
    return request.app.state.token_provider


def get_forwarder(request: Request) -> AdsForwarder:
    return request.app.state.forwarder
