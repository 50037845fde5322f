"""
Judge clients

Remote code execution behind one interface. Two backends:
  - Judge0 (RapidAPI or self-hosted): submit with wait=true, poll by token
    while the submission is still queued
  - Codex: single synchronous POST

Transport failures are translated into the domain taxonomy:
timeouts -> JudgeTimeout, everything else -> UpstreamFailure.
"""

import asyncio
from typing import Dict, Optional

import httpx
from pydantic import BaseModel

from classlab import config
from classlab import errors
from classlab.system.logger_config import get_logger

logger = get_logger(__name__)

# Judge0 status ids
STATUS_IN_QUEUE = 1
STATUS_PROCESSING = 2
STATUS_ACCEPTED = 3
STATUS_COMPILATION_ERROR = 6

LANGUAGE_IDS = {
    "python": 71,
    "cpp": 54,
    "java": 62,
    "javascript": 63,
    "c": 50,
}

CODEX_LANGUAGES = {
    "cpp": "cpp",
    "python": "py",
    "java": "java",
    "javascript": "js",
    "c": "c",
}


class ExecutionResult(BaseModel):
    stdout: str = ""
    stderr: str = ""
    compile_output: str = ""
    status_id: Optional[int] = None
    status_description: Optional[str] = None

    @property
    def has_compile_error(self) -> bool:
        return self.status_id == STATUS_COMPILATION_ERROR or bool(self.compile_output.strip())


class JudgeClient:
    """Base class: subclasses implement execute()"""

    name = "base"
    languages: Dict[str, object] = {}
    ping_path = "/"

    def __init__(
        self,
        base_url: str,
        headers: Optional[dict] = None,
        request_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.request_timeout = request_timeout or config.JUDGE_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"Content-Type": "application/json", **self.headers},
            timeout=self.request_timeout,
            transport=self.transport
        )

    def language_key(self, language: str):
        key = self.languages.get((language or "").strip().lower())
        if key is None:
            raise errors.ValidationError(
                f"Unsupported language '{language}'. Supported: {', '.join(sorted(self.languages))}"
            )
        return key

    async def _request(self, client: httpx.AsyncClient, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException:
            logger.warning("%s judge timed out on %s %s", self.name, method, path)
            raise errors.JudgeTimeout("Judge did not respond in time")
        except httpx.HTTPStatusError as e:
            logger.error("%s judge returned HTTP %s", self.name, e.response.status_code)
            raise errors.UpstreamFailure(f"Judge service error (HTTP {e.response.status_code})")
        except httpx.HTTPError as e:
            logger.error("%s judge unreachable: %s", self.name, e)
            raise errors.UpstreamFailure("Judge service unavailable")
        except ValueError:
            raise errors.UpstreamFailure("Judge returned a malformed response")

    async def execute(self, source_code: str, language: str, stdin: str = "") -> ExecutionResult:
        raise NotImplementedError

    async def ping(self) -> bool:
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}{self.ping_path}")
            return response.status_code < 500
        except httpx.HTTPError:
            return False

# ==================== JUDGE0 ====================

class Judge0Client(JudgeClient):
    name = "judge0"
    languages = LANGUAGE_IDS
    ping_path = "/about"

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        api_host: str = None,
        poll_interval: float = None,
        **kwargs
    ):
        api_key = api_key if api_key is not None else config.JUDGE0_API_KEY
        api_host = api_host if api_host is not None else config.JUDGE0_API_HOST

        headers = {}
        if api_key:
            headers = {"X-RapidAPI-Key": api_key, "X-RapidAPI-Host": api_host}

        super().__init__(base_url or config.JUDGE0_API_URL, headers=headers, **kwargs)
        self.poll_interval = config.JUDGE_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval

    @staticmethod
    def _pending(data: dict) -> bool:
        status_id = (data.get("status") or {}).get("id")
        if status_id is None:
            # wait=false style answer: only a token came back
            return "token" in data and "stdout" not in data
        return status_id in (STATUS_IN_QUEUE, STATUS_PROCESSING)

    async def execute(self, source_code: str, language: str, stdin: str = "") -> ExecutionResult:
        payload = {
            "source_code": source_code,
            "language_id": self.language_key(language),
            "stdin": stdin or ""
        }

        async with self._client() as client:
            data = await self._request(
                client, "POST", "/submissions",
                params={"base64_encoded": "false", "wait": "true"},
                json=payload
            )

            while self._pending(data):
                token = data.get("token")
                if not token:
                    raise errors.UpstreamFailure("Judge returned neither a result nor a token")
                await asyncio.sleep(self.poll_interval)
                data = await self._request(
                    client, "GET", f"/submissions/{token}",
                    params={"base64_encoded": "false"}
                )

        status = data.get("status") or {}
        return ExecutionResult(
            stdout=data.get("stdout") or "",
            stderr=data.get("stderr") or "",
            compile_output=data.get("compile_output") or "",
            status_id=status.get("id"),
            status_description=status.get("description")
        )

# ==================== CODEX ====================

class CodexClient(JudgeClient):
    name = "codex"
    languages = CODEX_LANGUAGES

    def __init__(self, base_url: str = None, **kwargs):
        super().__init__(base_url or config.CODEX_API_URL, **kwargs)

    async def execute(self, source_code: str, language: str, stdin: str = "") -> ExecutionResult:
        payload = {
            "code": source_code,
            "language": self.language_key(language),
            "input": stdin or ""
        }

        async with self._client() as client:
            data = await self._request(client, "POST", "", json=payload)

        # Codex folds compile and runtime failures into one error field
        return ExecutionResult(
            stdout=data.get("output") or "",
            compile_output=data.get("error") or ""
        )


_judge: Optional[JudgeClient] = None


def build_judge(backend: str = None) -> JudgeClient:
    backend = (backend or config.JUDGE_BACKEND).lower()
    if backend == "codex":
        return CodexClient()
    if backend == "judge0":
        return Judge0Client()
    raise ValueError(f"Unknown JUDGE_BACKEND '{backend}'")


def get_judge() -> JudgeClient:
    """Dependency: the configured judge backend"""
    global _judge
    if _judge is None:
        _judge = build_judge()
    return _judge
