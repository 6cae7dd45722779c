"""
Service dependencies for FastAPI.

Components are constructed once in the application lifespan and stored on
app.state; these accessors hand them to route handlers.
"""
from fastapi import Request

from formhooks.services.dispatcher import Dispatcher
from formhooks.services.relay import Relay
from formhooks.services.response_service import ResponseService


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


def get_relay(request: Request) -> Relay:
    return request.app.state.relay


def get_response_service(request: Request) -> ResponseService:
    return request.app.state.response_service
