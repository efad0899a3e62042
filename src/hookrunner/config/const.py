# src/hookrunner/config/const.py
from __future__ import annotations

# defaults; every value can be overridden through Settings (.env / ENV / CLI)
ENGINE_CMD: tuple[str, ...] = ("deno", "run", "--allow-all")
ENGINE_EXT: str = ".ts"
SHELL: str = "sh"
SHELL_EXT: str = ".sh"
ENTRY_STEM: str = "run"

HOST: str = "0.0.0.0"
PORT: int = 4500

WEBHOOK_ID_PATTERN: str = r"^[A-Za-z0-9_-]*$"
SIGNATURE_HEADER: str = "X-Hub-Signature"

# chunk size for pipe reads and the depth of the merged output queue
READ_CHUNK: int = 4096
OUTPUT_QUEUE_SIZE: int = 64
