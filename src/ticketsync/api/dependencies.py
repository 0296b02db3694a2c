"""Request-scoped accessors for the objects built once in create_app()."""
from fastapi import Request


def get_app_engine(request: Request):
    return request.app.state.engine


def get_client(request: Request):
    return request.app.state.client


def get_sync_service(request: Request):
    return request.app.state.sync_service
