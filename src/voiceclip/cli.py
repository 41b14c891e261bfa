#!/usr/bin/env python3
"""Voice Clip CLI - terminal client for the voice clip backend.

Signs in, lists voices, synthesizes clips, trims silence locally and shows
recent history and daily usage.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import re
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import httpx
from rich.console import Console
from rich.style import Style
from rich.table import Table

from .audio import DecodeError, process_clip, summarize_clip

# Cache directory for session persistence
CACHE_DIR = Path.home() / ".cache" / "voiceclip"
TOKEN_FILENAME = "session_token"

DEFAULT_SERVER = "http://localhost:8000"
UI_TRIM_THRESHOLD = 0.014
UI_TRIM_MIN_DURATION_MS = 180
UI_BAR_COUNT = 52

# Styles
ERROR_STYLE = Style(color="red", bold=True)
INFO_STYLE = Style(color="cyan")
WAVE_STYLE = Style(color="bright_green")

_BAR_GLYPHS = "▁▂▃▄▅▆▇█"
_FILENAME_PATTERN = re.compile(r'filename="([^"]+)"')


class ApiError(RuntimeError):
    """Raised when the backend answers with an error envelope."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return f"Request failed with status {response.status_code}."


def render_bars(bars: Sequence[float]) -> str:
    top = len(_BAR_GLYPHS) - 1
    return "".join(_BAR_GLYPHS[min(top, max(0, round(value * top)))] for value in bars)


def filename_from_disposition(header: str | None, fallback: str = "voice-clip.mp3") -> str:
    """Return the attachment name with any directory part removed."""

    match = _FILENAME_PATTERN.search(header or "")
    if not match:
        return fallback
    name = Path(match.group(1).replace("\\", "/")).name
    return name if name not in ("", ".", "..") else fallback


class TokenCache:
    """Persist the session token between invocations."""

    def __init__(self, directory: Path = CACHE_DIR) -> None:
        self.path = directory / TOKEN_FILENAME

    def load(self) -> Optional[str]:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return token or None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token, encoding="utf-8")
        try:
            self.path.chmod(0o600)
        except OSError:
            pass

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class VoiceClipClient:
    """Thin async wrapper over the backend HTTP API."""

    def __init__(
        self,
        server_url: str,
        *,
        token: Optional[str] = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        self.token = token
        self._transport = transport
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.server_url,
            transport=self._transport,
            timeout=self._timeout,
        ) as client:
            response = await client.request(method, path, headers=self._headers(), **kwargs)
        if not response.is_success:
            raise ApiError(response.status_code, _error_message(response))
        return response

    async def register(self, email: str, password: str) -> dict[str, Any]:
        response = await self._request(
            "POST", "/api/auth/register", json={"email": email, "password": password}
        )
        return response.json()

    async def login(self, email: str, password: str) -> dict[str, Any]:
        response = await self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        return response.json()

    async def me(self) -> dict[str, Any]:
        return (await self._request("GET", "/api/auth/me")).json()["user"]

    async def voices(self) -> dict[str, Any]:
        return (await self._request("GET", "/api/voices")).json()

    async def clips(self) -> list[dict[str, Any]]:
        return (await self._request("GET", "/api/clips")).json()["clips"]

    async def usage(self) -> dict[str, Any]:
        return (await self._request("GET", "/api/usage")).json()["usage"]

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        *,
        voice_name: Optional[str] = None,
        model_id: Optional[str] = None,
        voice_settings: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        body: dict[str, Any] = {"text": text, "voiceId": voice_id}
        if voice_name:
            body["voiceName"] = voice_name
        if model_id:
            body["modelId"] = model_id
        if voice_settings:
            body["voiceSettings"] = voice_settings
        return await self._request("POST", "/api/tts", json=body)


class VoiceClipCli:
    """Dispatch parsed arguments to client calls and render the results."""

    def __init__(
        self,
        client: VoiceClipClient,
        cache: TokenCache,
        console: Console | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.console = console or Console()

    async def _sign_in(self, action: str, email: str, password: str) -> int:
        call = self.client.register if action == "register" else self.client.login
        payload = await call(email, password)
        self.cache.save(payload["token"])
        self.console.print(f"Signed in as {payload['user']['email']}", style=INFO_STYLE)
        return 0

    async def logout(self) -> int:
        self.cache.clear()
        self.console.print("Signed out.", style=INFO_STYLE)
        return 0

    async def me(self) -> int:
        user = await self.client.me()
        self.console.print(f"{user['email']} [dim]({user['id']})[/dim]")
        return 0

    async def voices(self) -> int:
        catalog = await self.client.voices()
        capabilities = catalog.get("capabilities", {})
        table = Table(title=f"Voices ({catalog.get('provider', 'unknown')})")
        table.add_column("Name")
        table.add_column("Id", style="dim")
        table.add_column("Category")
        table.add_column("Accent")
        table.add_column("Gender")
        for voice in catalog.get("voices", []):
            table.add_row(
                voice.get("name", ""),
                voice.get("id", ""),
                voice.get("category") or "",
                voice.get("accent") or "",
                voice.get("gender") or "",
            )
        self.console.print(table)
        self.console.print(
            f"[dim]Model selection: {'yes' if capabilities.get('modelSelection') else 'no'}"
            f" | Voice settings: {'yes' if capabilities.get('voiceSettings') else 'no'}[/dim]"
        )
        return 0

    async def clips(self) -> int:
        clips = await self.client.clips()
        if not clips:
            self.console.print("No saved clips yet.", style=INFO_STYLE)
            return 0
        table = Table(title="Recent clips")
        table.add_column("When", style="dim")
        table.add_column("Voice")
        table.add_column("Chars", justify="right")
        table.add_column("Text")
        for clip in clips:
            table.add_row(
                clip.get("createdAt", "")[:19],
                clip.get("voiceName", ""),
                str(clip.get("chars", "")),
                clip.get("text", ""),
            )
        self.console.print(table)
        return 0

    async def usage(self) -> int:
        usage = await self.client.usage()
        self.console.print(
            f"{usage['day']}: {usage['used']}/{usage['limit']} characters used"
        )
        return 0

    async def say(self, args: argparse.Namespace) -> int:
        voice_id = args.voice
        voice_name = args.voice_name
        if not voice_id:
            catalog = await self.client.voices()
            voices = catalog.get("voices") or []
            if not voices:
                self.console.print("No voices available.", style=ERROR_STYLE)
                return 1
            voice_id = voices[0]["id"]
            voice_name = voice_name or voices[0].get("name")

        response = await self.client.synthesize(
            args.text,
            voice_id,
            voice_name=voice_name,
            model_id=args.model,
        )
        audio = response.content
        filename = filename_from_disposition(response.headers.get("content-disposition"))
        out_dir = Path(args.output)
        out_dir.mkdir(parents=True, exist_ok=True)
        clip_path = out_dir / filename
        clip_path.write_bytes(audio)
        self.console.print(f"Saved {clip_path}", style=INFO_STYLE)

        used = response.headers.get("x-usage-used")
        limit = response.headers.get("x-usage-limit")
        if used and limit:
            self.console.print(f"[dim]Usage today: {used}/{limit}[/dim]")

        try:
            if args.trim:
                processed = process_clip(
                    audio,
                    threshold=args.threshold,
                    min_duration_ms=args.min_duration,
                    bar_count=args.bars,
                )
                bars = processed.bars
                if processed.did_trim:
                    trimmed_path = out_dir / f"{Path(filename).stem}-trimmed.wav"
                    trimmed_path.write_bytes(processed.wav)
                    self.console.print(
                        f"Trimmed {processed.leading_ms} ms / {processed.trailing_ms} ms"
                        f" of silence -> {trimmed_path}",
                        style=INFO_STYLE,
                    )
                else:
                    self.console.print("No silence to trim.", style=INFO_STYLE)
                duration_ms = processed.duration_ms
            else:
                summary = summarize_clip(audio, args.bars)
                bars = summary.bars
                duration_ms = summary.duration_ms
        except DecodeError:
            self.console.print(
                "Trimming isn't available in this environment. The original clip is kept.",
                style=ERROR_STYLE,
            )
            return 0

        self.console.print(render_bars(bars), style=WAVE_STYLE)
        self.console.print(f"[dim]{duration_ms / 1000:.2f}s[/dim]")
        return 0

    async def run(self, args: argparse.Namespace) -> int:
        try:
            if args.command in ("register", "login"):
                return await self._sign_in(args.command, args.email, args.password)
            if args.command == "logout":
                return await self.logout()
            if args.command == "me":
                return await self.me()
            if args.command == "voices":
                return await self.voices()
            if args.command == "clips":
                return await self.clips()
            if args.command == "usage":
                return await self.usage()
            if args.command == "say":
                return await self.say(args)
        except ApiError as exc:
            self.console.print(f"Error ({exc.status_code}): {exc.message}", style=ERROR_STYLE)
            return 1
        except httpx.HTTPError as exc:
            self.console.print(f"Cannot reach backend: {exc}", style=ERROR_STYLE)
            return 1
        self.console.print(f"Unknown command: {args.command}", style=ERROR_STYLE)
        return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voiceclip",
        description="Voice Clip - terminal client for the voice clip backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  voiceclip login me@example.com hunter2hunter2
  voiceclip say "Hello world" --voice aura-2-thalia-en
  voiceclip usage

Environment Variables:
  VOICECLIP_SERVER    Default server URL
""",
    )
    parser.add_argument(
        "--server",
        "-s",
        default=os.environ.get("VOICECLIP_SERVER", DEFAULT_SERVER),
        help=f"Backend server URL (default: {DEFAULT_SERVER})",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name in ("register", "login"):
        sub = subparsers.add_parser(name, help=f"{name.capitalize()} and cache the session")
        sub.add_argument("email")
        sub.add_argument("password")

    subparsers.add_parser("logout", help="Forget the cached session")
    subparsers.add_parser("me", help="Show the signed-in account")
    subparsers.add_parser("voices", help="List voices for the active provider")
    subparsers.add_parser("clips", help="Show recent clips")
    subparsers.add_parser("usage", help="Show today's character usage")

    say = subparsers.add_parser("say", help="Synthesize a clip and save it")
    say.add_argument("text")
    say.add_argument("--voice", "-v", default=None, help="Voice id (default: first voice)")
    say.add_argument("--voice-name", default=None, help="Display name stored in history")
    say.add_argument("--model", "-m", default=None, help="Model id (ElevenLabs only)")
    say.add_argument("--output", "-o", default=".", help="Directory for saved clips")
    say.add_argument(
        "--no-trim", dest="trim", action="store_false", help="Skip local silence trimming"
    )
    say.add_argument("--threshold", type=float, default=UI_TRIM_THRESHOLD)
    say.add_argument("--min-duration", type=float, default=UI_TRIM_MIN_DURATION_MS)
    say.add_argument("--bars", type=int, default=UI_BAR_COUNT)
    return parser


def run(
    argv: Sequence[str] | None = None,
    *,
    console: Console | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    cache_dir: Path | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    cache = TokenCache(cache_dir or CACHE_DIR)
    client = VoiceClipClient(args.server, token=cache.load(), transport=transport)
    cli = VoiceClipCli(client, cache, console)
    return asyncio.run(cli.run(args))


def main() -> None:
    """CLI entry point."""
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
