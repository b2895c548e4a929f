from __future__ import annotations

import logging
from pathlib import Path

from intgen.logging import configure_logging, get_logger, redact_assignments


def test_redact_assignments_keeps_names() -> None:
    text = "Rejected STRIPE_SECRET_KEY=sk_live_abc, OPENAI_API_KEY='x y' for path=app"

    assert redact_assignments(text) == (
        "Rejected STRIPE_SECRET_KEY=<redacted>, OPENAI_API_KEY=<redacted> for path=app"
    )


def test_configure_logging_replaces_handlers_and_redacts(tmp_path: Path) -> None:
    log_file = tmp_path / "intgen.log"
    configure_logging()
    logger = configure_logging(verbose=True, log_file=log_file)

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2

    get_logger("orchestrator").debug("env %s", "RESEND_API_KEY=re_123")
    for handler in logger.handlers:
        handler.flush()

    contents = log_file.read_text(encoding="utf-8")
    assert "RESEND_API_KEY=<redacted>" in contents
    assert "re_123" not in contents
    assert "intgen.orchestrator" in contents

    configure_logging()
    assert len(logger.handlers) == 1
