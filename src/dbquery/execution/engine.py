"""Default execution engine client.

The engine is an external executable that compiles a serialized DML
descriptor into a query for the target store and runs it. Each action is
one process invocation::

    query_engine --action execute --database shop --dml '{"type": "select", ...}'

The process answers with a JSON object ``{"status", "data", "message"}`` on
the last non-empty line of its stdout.
"""

import asyncio
import json
import time
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from dbquery.common.exceptions import engine_unavailable_error
from dbquery.constants.dml import STATUS_INTERNAL_ERROR, EngineAction
from dbquery.execution.types import EngineResponse
from dbquery.logging import get_logger
from dbquery.settings import _Settings, get_settings

logger = get_logger(__name__)


def parse_engine_output(stdout: str) -> Optional[EngineResponse]:
    """Parse the response object from the last non-empty stdout line.

    Returns:
        The response, or None when no line holds a valid response object
    """
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    if not lines:
        return None
    try:
        payload = json.loads(lines[-1])
        if not isinstance(payload, dict):
            return None
        return EngineResponse.model_validate(payload)
    except (ValueError, PydanticValidationError):
        return None


class SubprocessEngine:
    """Runs the engine executable once per action for one database.

    Attributes:
        database_name: Database every invocation targets
        settings: Provides ``engine_command`` and ``engine_timeout_seconds``
    """

    def __init__(self, database_name: str, settings: Optional[_Settings] = None):
        self.database_name = database_name
        self.settings = settings or get_settings()

    def build_command(self, action: EngineAction, dml: Optional[Dict[str, Any]] = None) -> List[str]:
        command = [
            self.settings.engine_command,
            "--action",
            EngineAction(action).value,
            "--database",
            self.database_name,
        ]
        if dml is not None:
            command.extend(["--dml", json.dumps(dml, default=str)])
        return command

    async def run(self, action: EngineAction, dml: Optional[Dict[str, Any]] = None) -> EngineResponse:
        """Invoke the engine and return its structured response.

        Raises:
            DQError: ENGINE_UNAVAILABLE (retryable) when the executable cannot
                be started or does not answer within the timeout
        """
        command = self.build_command(action, dml)
        action_name = EngineAction(action).value
        start_time = time.time()

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise engine_unavailable_error(
                f"Execution engine '{self.settings.engine_command}' could not be started",
                command=self.settings.engine_command,
                cause=exc,
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.settings.engine_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise engine_unavailable_error(
                f"Execution engine did not answer within {self.settings.engine_timeout_seconds}s",
                command=self.settings.engine_command,
                details={"action": action_name},
                cause=exc,
            ) from exc

        out_text = stdout.decode("utf-8", errors="replace")
        err_text = stderr.decode("utf-8", errors="replace").strip()
        duration = time.time() - start_time

        response = parse_engine_output(out_text)
        if response is None:
            message = err_text or f"Execution engine returned no response (exit code {process.returncode})"
            logger.error(
                "Engine returned no response",
                extra={
                    "action": action_name,
                    "exit_code": process.returncode,
                    "duration.seconds": f"{duration:.6f}",
                },
            )
            return EngineResponse(status=STATUS_INTERNAL_ERROR, message=message)

        logger.debug(
            "Engine invocation finished",
            extra={
                "action": action_name,
                "status": response.status,
                "duration.seconds": f"{duration:.6f}",
            },
        )
        return response
