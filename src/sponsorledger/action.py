"""Minimal GitHub Actions toolkit: inputs, outputs and workflow commands."""

import logging
import os
import sys
import uuid
from collections.abc import MutableMapping
from typing import TextIO

logger = logging.getLogger(__name__)


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class ActionContext:
    """Reads action inputs and reports outputs and status to the runner."""

    def __init__(
        self,
        env: MutableMapping[str, str] | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.env = os.environ if env is None else env
        self.stream = stream or sys.stdout
        self.exit_code = 0

    def get_input(self, name: str, required: bool = False) -> str:
        """Value of action input `name`, or '' when unset."""
        key = "INPUT_" + name.replace(" ", "_").upper()
        value = self.env.get(key, "").strip()
        if required and not value:
            raise ValueError(f"Input required and not supplied: {name}")
        return value

    def is_debug(self) -> bool:
        return self.env.get("RUNNER_DEBUG") == "1" or self.env.get("ACTIONS_STEP_DEBUG", "").lower() == "true"

    def _command(self, command: str, message: str) -> None:
        self.stream.write(f"::{command}::{_escape_data(message)}\n")
        self.stream.flush()

    def debug(self, message: str) -> None:
        self._command("debug", message)

    def error(self, message: str) -> None:
        self._command("error", message)

    def set_output(self, name: str, value: str) -> None:
        """Append an output for later workflow steps."""
        output_file = self.env.get("GITHUB_OUTPUT")
        if not output_file:
            logger.info("GITHUB_OUTPUT not set; output %s=%s", name, value)
            return
        with open(output_file, "a", encoding="utf-8") as f:
            if "\n" in value:
                delimiter = f"ghadelimiter_{uuid.uuid4()}"
                f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
            else:
                f.write(f"{name}={value}\n")

    def set_failed(self, message: str) -> None:
        """Mark the step failed with `message`."""
        self.exit_code = 1
        self.error(message)
