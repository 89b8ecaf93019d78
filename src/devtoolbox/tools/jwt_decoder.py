"""JWT decoder: show the header and payload of a token. Signatures are not verified."""

from __future__ import annotations

import base64
import binascii
from typing import Any

import orjson
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.pretty import Pretty
from rich.text import Text

from devtoolbox.foundation.errors import ErrorCode, InputError
from devtoolbox.runtime.events import InputEvent, Key, KeyEvent

from .base import FormState, Tool, ToolMetadata, field_panel


def decode_segment(segment: str) -> Any:
    """Decode one base64url JSON segment; missing padding is tolerated."""
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return orjson.loads(raw)
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise InputError(f"Invalid JWT segment: {e}", code=ErrorCode.PARSE_ERROR) from e


def decode_jwt(token: str) -> tuple[Any, Any]:
    """Header and payload of a compact JWT (`header.payload.signature`)."""
    parts = token.strip().split(".")
    if len(parts) != 3:
        raise InputError("Invalid JWT format")
    return decode_segment(parts[0]), decode_segment(parts[1])


class JwtDecoderState(FormState):
    text_fields = ("token",)

    token: str = ""
    header: Any = None
    payload: Any = None


class JwtDecoder(Tool[JwtDecoderState]):
    metadata = ToolMetadata(name="jwt_decoder", title="JWT Decoder", description="Decode JWT header and payload")
    state_schema = JwtDecoderState

    async def _handle(self, event: InputEvent, state: JwtDecoderState) -> str:
        if not isinstance(event, KeyEvent):
            return ""
        if event.code is Key.ENTER:
            state.header, state.payload = decode_jwt(state.token)
            return "Decoded JWT"
        return state.edit(event) or ""

    def _render(self, state: JwtDecoderState) -> RenderableType:
        def section(title: str, value: Any) -> Panel:
            body: RenderableType = Pretty(value) if value is not None else Text("None", style="dim")
            return Panel(body, title=Text(title, style="green"), title_align="left")

        return Group(
            field_panel("JWT Input", state.token, focused=True),
            section("Header", state.header),
            section("Payload", state.payload),
        )
