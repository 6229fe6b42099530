"""
Pytest configuration and fixtures
"""

import sys
import pytest

from journal_bridge.core.config import Settings
from journal_bridge.services.logs import JournalSupervisor


# Stub journalctl replacements. Each runs as `python -c <script> <args...>`.
STUB_SCRIPTS = {
    # Never stops on its own
    "infinite": (
        "import time\n"
        "n = 0\n"
        "while True:\n"
        "    print('{\"MESSAGE\": \"tick %d\"}' % n, flush=True)\n"
        "    n += 1\n"
        "    time.sleep(0.01)\n"
    ),
    # Three lines, then a clean exit
    "finite": "print('one'); print('two'); print('three')",
    # Non-zero exit with a diagnostic on stderr
    "failing": "import sys; print('partial'); sys.stderr.write('boom\\n'); sys.exit(3)",
    # Only dies to SIGKILL
    "ignores_sigterm": (
        "import signal, time\n"
        "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
        "print('ready', flush=True)\n"
        "while True:\n"
        "    time.sleep(0.1)\n"
    ),
    # Reports the arguments it was started with
    "echo_args": "import json, sys; print(json.dumps(sys.argv[1:]))",
    # One line far longer than the reader limit
    "long_line": "print('x' * 10000)",
    # Writes faster than anyone reads
    "flood": (
        "import sys\n"
        "while True:\n"
        "    sys.stdout.write('x' * 1023 + '\\n')\n"
    ),
}


@pytest.fixture
def stub_command():
    """Command line that runs a named stub script"""
    def _command(name: str):
        return [sys.executable, "-c", STUB_SCRIPTS[name]]
    return _command


@pytest.fixture
def make_supervisor(stub_command):
    """Build a supervisor running one of the stub scripts"""
    def _make(name: str, terminate_timeout: float = 1.0, max_line_bytes: int = 64 * 1024):
        return JournalSupervisor(
            command=stub_command(name),
            terminate_timeout=terminate_timeout,
            max_line_bytes=max_line_bytes
        )
    return _make


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment of the test run"""
    return Settings(
        _env_file=None,
        auth_username="",
        auth_password="",
        user_scope=False,
        docker=True,
        write_timeout=2.0,
        terminate_timeout=1.0,
        command_timeout=2.0,
        max_sessions=4
    )
