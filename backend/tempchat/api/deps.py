# tempchat/api/deps.py

from fastapi import Request

from tempchat.services.broadcast import BroadcastRegistry
from tempchat.services.giphy import GiphyClient
from tempchat.services.storage import FileStorage


def get_registry(request: Request) -> BroadcastRegistry:
    return request.app.state.broadcast


def get_file_storage(request: Request) -> FileStorage:
    return request.app.state.file_storage


def get_giphy(request: Request) -> GiphyClient:
    return request.app.state.giphy
