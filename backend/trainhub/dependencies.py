from fastapi import Request

from trainhub.api.commands import CommandDispatcher
from trainhub.infra.db import TrainingStore


def get_store(request: Request) -> TrainingStore:
    return request.app.state.store


def get_dispatcher(request: Request) -> CommandDispatcher:
    return request.app.state.dispatcher
