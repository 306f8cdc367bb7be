"""
Oracle client - the text-generation boundary.

The model is expected to *usually* answer with a JSON object. Nothing
downstream trusts that: every response goes through parse_json_response,
which repairs the common defects once and otherwise returns a failed
ParseResult instead of raising.
"""

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from config import get_client

DEFAULT_ORACLE_MODEL = "ollama/llama3.1:8b"

# Fields the prompts ask for as strings that small models like to emit as arrays
STRING_LIST_FIELDS = ("genres_raw", "hard_nos_raw", "audience_raw")

_ARRAY_AS_STRING = re.compile(
    r'"(' + "|".join(STRING_LIST_FIELDS) + r')"\s*:\s*\[([^\]]*)\]'
)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_QUOTED = re.compile(r'"((?:[^"\\]|\\.)*)"')


class OracleError(Exception):
    """The oracle call failed (timeout, connection, API error)."""


@dataclass
class OracleParams:
    """Sampling and budget parameters for one oracle call."""
    temperature: float = 0.0
    max_tokens: int = 1000
    num_ctx: Optional[int] = None  # Context-size hint (ollama only)
    top_p: Optional[float] = None
    repeat_penalty: Optional[float] = None
    timeout: float = 30.0


@dataclass
class ParseResult:
    ok: bool
    data: Any = None
    error: Optional[str] = None
    repaired: bool = False


def _outermost_span(text: str, expect: str) -> Optional[str]:
    open_char, close_char = ("{", "}") if expect == "object" else ("[", "]")
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def _join_items(match: re.Match) -> str:
    items = []
    for raw in _QUOTED.findall(match.group(2)):
        try:
            items.append(json.loads(f'"{raw}"'))
        except json.JSONDecodeError:
            items.append(raw)
    return f'"{match.group(1)}": {json.dumps(", ".join(items))}'


def repair_json(span: str) -> str:
    """Collapse list-valued string fields and strip trailing commas."""
    span = _ARRAY_AS_STRING.sub(_join_items, span)
    return _TRAILING_COMMA.sub(r"\1", span)


def parse_json_response(text: str, expect: str = "object") -> ParseResult:
    """
    Extract and parse the outermost JSON object (or array) from oracle text.

    Strict parse first, then one repair pass and a single retry.
    """
    if not text:
        return ParseResult(ok=False, error="Empty response")

    span = _outermost_span(text, expect)
    if span is None:
        return ParseResult(ok=False, error=f"No JSON {expect} in response")

    try:
        return ParseResult(ok=True, data=json.loads(span))
    except json.JSONDecodeError:
        pass

    try:
        return ParseResult(ok=True, data=json.loads(repair_json(span)), repaired=True)
    except json.JSONDecodeError as e:
        return ParseResult(ok=False, error=f"Unparseable JSON after repair: {e}")


class OracleClient:
    """Request/response wrapper around an OpenAI-compatible chat endpoint."""

    def __init__(self, model_key: str = DEFAULT_ORACLE_MODEL):
        self.model_key = model_key
        self._client = None
        self._cfg = None

    def _resolve(self):
        if self._client is None:
            self._client, self._cfg = get_client(self.model_key)
        return self._client, self._cfg

    def generate(self, prompt: str, params: OracleParams) -> str:
        """Send one prompt. Raises OracleError on any failure."""
        try:
            client, cfg = self._resolve()
            kwargs = {
                "model": cfg["model"],
                "messages": [{"role": "user", "content": prompt}],
                "temperature": params.temperature,
                "max_tokens": params.max_tokens,
            }
            if params.top_p is not None:
                kwargs["top_p"] = params.top_p
            if cfg["provider"] == "ollama":
                options = {}
                if params.num_ctx:
                    options["num_ctx"] = params.num_ctx
                if params.repeat_penalty is not None:
                    options["repeat_penalty"] = params.repeat_penalty
                if options:
                    kwargs["extra_body"] = {"options": options}

            resp = client.with_options(timeout=params.timeout).chat.completions.create(**kwargs)
            content = resp.choices[0].message.content
        except Exception as e:
            raise OracleError(f"{self.model_key}: {e}") from e

        if not content:
            raise OracleError(f"{self.model_key}: empty response")
        return content

    async def agenerate(self, prompt: str, params: OracleParams) -> str:
        """Async wrapper: the SDK call is sync, run it in a thread."""
        return await asyncio.to_thread(self.generate, prompt, params)

    async def ask_json(self, prompt: str, params: OracleParams, expect: str = "object") -> ParseResult:
        """Generate and parse. Oracle failures become a failed ParseResult."""
        try:
            text = await self.agenerate(prompt, params)
        except OracleError as e:
            return ParseResult(ok=False, error=str(e))
        return parse_json_response(text, expect)

    def is_available(self, timeout: float = 5.0) -> bool:
        try:
            client, _ = self._resolve()
            client.with_options(timeout=timeout).models.list()
            return True
        except Exception as e:
            print(f"[ORACLE] Unavailable ({self.model_key}): {e}")
            return False
