"""
Shared pytest fixtures.
"""

import pytest


@pytest.fixture(autouse=True)
def isolated_log_file(tmp_path, monkeypatch):
    """Keep CLI log files out of the user's home directory."""
    log_path = tmp_path / "logs" / "git-stack.log"
    monkeypatch.setenv("GIT_STACK_LOG", str(log_path))
    return log_path
