"""
Python execution tool.

Each snippet runs in a fresh interpreter (``python -I``) started in an empty
temporary directory with a minimal environment, so provider keys and the
agent's own modules are out of reach. Inside that process the snippet sees
builtins cut down to pure computation (no ``open``, ``eval``, ``exec`` or
``getattr``) and can import only an allow-list of standard modules.
``print`` writes to a buffer that becomes the tool's output, and a value
bound to ``result`` is returned alongside it.

Before spawning, the snippet is parsed and rejected if it touches private
or dunder attributes (``random._os``, ``().__class__``) or well-known
pivots such as ``statistics.sys``. That check is best-effort: the process
is the actual boundary. On POSIX it runs under CPU, address-space and
file-size limits, and a snippet that exceeds the timeout is killed.
"""

from __future__ import annotations

import ast
import asyncio
import json
import math
import os
import sys
import tempfile
from datetime import datetime, timezone
from typing import Any

from llm_agent.logging import get_logger
from llm_agent.tools.registry import BaseTool

logger = get_logger("tools.code_exec")

OUTPUT_LIMIT = 100_000
MEMORY_LIMIT = 512 * 1024 * 1024

ALLOWED_MODULES = frozenset(
    {"collections", "datetime", "functools", "itertools", "json", "math", "random", "re", "statistics", "string"}
)

# Builtins copied into the sandbox; everything else raises NameError
EXPOSED_BUILTINS = (
    "abs all any bool bytes callable chr dict divmod enumerate filter float format frozenset "
    "int isinstance iter len list map max min next ord pow range repr reversed round set "
    "sorted str sum tuple type zip "
    "ArithmeticError AttributeError Exception IndexError KeyError RuntimeError StopIteration "
    "TypeError ValueError ZeroDivisionError"
).split()

# Module attributes that lead back to the interpreter or the filesystem
BLOCKED_ATTRIBUTES = frozenset(
    {"builtins", "codecs", "importlib", "io", "modules", "open", "os", "posix", "shutil", "socket", "subprocess", "sys"}
)

# Environment variables passed through to the child interpreter
INHERITED_ENV = ("PATH", "SYSTEMROOT", "LANG")

# Runs in the child; reads a JSON request on stdin, writes a JSON reply on stdout
_RUNNER = r"""
import builtins, json, sys

request = json.loads(sys.stdin.read())

if sys.platform != "win32":
    import resource
    for name, value in request["limits"].items():
        try:
            resource.setrlimit(getattr(resource, name), (value, value))
        except (AttributeError, ValueError, OSError):
            pass

allowed = frozenset(request["modules"])
limit = request["output_limit"]
chunks = []
size = 0


def sandbox_print(*args, sep=" ", end="\n", **_):
    global size
    if size > limit:
        return
    chunk = sep.join(str(a) for a in args) + end
    chunks.append(chunk)
    size += len(chunk)


def restricted_import(name, globals=None, locals=None, fromlist=(), level=0):
    if level or name.partition(".")[0] not in allowed:
        raise ImportError(f"Import of '{name}' is not allowed")
    return __import__(name, globals, locals, fromlist, level)


exposed = {name: getattr(builtins, name) for name in request["builtins"]}
exposed.update(__import__=restricted_import, print=sandbox_print)
namespace = {"__builtins__": exposed, "__name__": "__sandbox__"}

reply = {"output": "", "result": None, "error": None}
try:
    exec(compile(request["code"], "<execute_python>", "exec"), namespace)
except Exception as e:
    reply["error"] = f"{type(e).__name__}: {e}"

if reply["error"] is None and "result" in namespace:
    value = namespace["result"]
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        value = repr(value)
    reply["result"] = value

reply["output"] = "".join(chunks)
sys.stdout.write(json.dumps(reply))
"""


class SandboxViolation(ValueError):
    """A snippet reached for something the sandbox does not expose."""


def check_snippet(code: str) -> None:
    """
    Parse ``code`` and reject attribute access the sandbox forbids.

    Raises:
        SyntaxError: The snippet does not parse
        SandboxViolation: The snippet touches a private, dunder or blocked attribute
    """
    tree = ast.parse(code, "<execute_python>")
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute):
            if node.attr.startswith("_") or node.attr in BLOCKED_ATTRIBUTES:
                raise SandboxViolation(f"Access to '{node.attr}' is not allowed")
        elif isinstance(node, ast.Name) and node.id.startswith("__"):
            raise SandboxViolation(f"Access to '{node.id}' is not allowed")


def _truncate(text: str, limit: int = OUTPUT_LIMIT) -> str:
    if len(text) > limit:
        return text[:limit] + "\n... (output truncated)\n"
    return text


class ExecutePythonTool(BaseTool):
    """Run a Python snippet in a sandboxed child interpreter."""

    def __init__(
        self,
        timeout: float = 10.0,
        allowed_modules: frozenset[str] | None = None,
        memory_limit: int | None = MEMORY_LIMIT,
    ) -> None:
        self.timeout = timeout
        self.allowed_modules = allowed_modules or ALLOWED_MODULES
        self.memory_limit = memory_limit

    @property
    def name(self) -> str:
        return "execute_python"

    @property
    def description(self) -> str:
        return (
            "Execute Python code in a restricted sandbox and return its output. "
            "Use print() for text output or assign to `result` to return a value."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"code": {"type": "string", "description": "The Python code to execute"}},
            "required": ["code"],
        }

    def _limits(self) -> dict[str, int]:
        # CPU seconds back the wall-clock timeout; no file may be written
        limits = {"RLIMIT_CPU": math.ceil(self.timeout) + 1, "RLIMIT_FSIZE": 0}
        if self.memory_limit:
            limits["RLIMIT_AS"] = self.memory_limit
        return limits

    async def execute(self, args: dict[str, Any]) -> dict[str, Any]:
        code = args["code"]
        logger.debug("Running %d chars of Python (timeout %ss)", len(code), self.timeout)

        try:
            check_snippet(code)
        except (SyntaxError, SandboxViolation) as e:
            return self._payload(code, "", None, f"{type(e).__name__}: {e}")

        reply = await self._run_subprocess(code)
        return self._payload(code, reply.get("output") or "", reply.get("result"), reply.get("error"))

    async def _run_subprocess(self, code: str) -> dict[str, Any]:
        request = json.dumps({
            "code": code,
            "modules": sorted(self.allowed_modules),
            "builtins": EXPOSED_BUILTINS,
            "limits": self._limits(),
            "output_limit": OUTPUT_LIMIT,
        }).encode("utf-8")
        env = {key: os.environ[key] for key in INHERITED_ENV if key in os.environ}

        with tempfile.TemporaryDirectory(prefix="llm-agent-") as workdir:
            try:
                process = await asyncio.create_subprocess_exec(
                    sys.executable,
                    "-I",
                    "-c",
                    _RUNNER,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    cwd=workdir,
                    env=env,
                )
            except OSError as e:
                logger.error("Could not start Python sandbox: %s", e)
                return {"error": f"Could not start sandbox: {e}"}

            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(request), timeout=self.timeout)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                logger.warning("Python snippet killed after %ss", self.timeout)
                return {"error": f"Code timed out after {self.timeout}s"}

        try:
            reply = json.loads(stdout.decode("utf-8", errors="replace"))
        except ValueError:
            # Child died before replying (resource limit, interpreter crash)
            lines = stderr.decode("utf-8", errors="replace").strip().splitlines()
            return {"error": lines[-1] if lines else f"Sandbox exited with code {process.returncode}"}
        return reply if isinstance(reply, dict) else {"error": "Sandbox returned a malformed reply"}

    @staticmethod
    def _payload(code: str, output: str, result: Any, error: str | None) -> dict[str, Any]:
        text = _truncate(output)
        if result is not None:
            text += f"Return value: {json.dumps(result)}"
        return {
            "code": code,
            "success": error is None,
            "output": text,
            "result": result,
            "error": error,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
