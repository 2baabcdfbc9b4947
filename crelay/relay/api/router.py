from __future__ import annotations
from typing import Dict

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..config_loader import RelayConfig
from ..services.dispatcher import RequestDispatcher
from ..services.normalizer import parse_http
from ..services.pages import render_page
from ..services.types import BackendIOError, ChannelOutOfRange, NoDeviceFound, Result

API_PATH = "/gpio"

_STATUS_CODES = {
    NoDeviceFound: 503,
    ChannelOutOfRange: 400,
    BackendIOError: 500,
}


def status_code_for(result: Result) -> int:
    if result.ok:
        return 200
    for kind, code in _STATUS_CODES.items():
        if isinstance(result.error, kind):
            return code
    return 500


def render_api(result: Result) -> str:
    if not result.ok:
        return f"ERROR: {result.error}\n"
    return "".join(f"Relay {ch}:{int(state)}\n" for ch, state in result.states.items())


def _headers() -> Dict[str, str]:
    return {"Server": f"crelay/{__version__}", "Connection": "close"}


def get_router(dispatcher: RequestDispatcher, cfg: RelayConfig) -> APIRouter:
    r = APIRouter(tags=["relay"])

    async def _dispatch(request: Request) -> Result:
        body = await request.body() if request.method == "POST" else b""
        command = parse_http(request.method, request.url.query, body)
        # dispatch blocks (pulses sleep), keep it off the event loop
        return await run_in_threadpool(dispatcher.dispatch, command)

    @r.api_route(API_PATH, methods=["GET", "POST"], response_class=PlainTextResponse, summary="Relay API")
    async def relay_api(request: Request):
        result = await _dispatch(request)
        return PlainTextResponse(render_api(result), status_code=status_code_for(result), headers=_headers())

    @r.api_route("/{path:path}", methods=["GET", "POST"], response_class=HTMLResponse, summary="Relay page")
    async def relay_page(request: Request, path: str):
        result = await _dispatch(request)
        html = render_page(result, cfg.label, __version__)
        code = 200 if result.ok else status_code_for(result)
        return HTMLResponse(html, status_code=code, headers=_headers())

    return r
