"""Tests for the intgen CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from intgen import cli
from tests._fixtures.project_builder import ProjectBuilder


def _run(capsys: pytest.CaptureFixture[str], config_dir: Path, *argv: str):
    cli.main(["--config", str(config_dir), *argv])
    return json.loads(capsys.readouterr().out)


def test_parser_accepts_generate_flags() -> None:
    parser = cli._build_parser()

    args = parser.parse_args(
        [
            "generate",
            "stripe",
            "--framework",
            "nextjs",
            "--feature",
            "webhooks",
            "--feature",
            "checkout",
            "--env",
            "STRIPE_SECRET_KEY",
            "--preview",
            "--verbose",
        ]
    )

    assert args.command == "generate"
    assert args.feature == ["webhooks", "checkout"]
    assert args.env == ["STRIPE_SECRET_KEY"]
    assert args.preview is True
    assert args.llm is False
    assert args.verbose is True


def test_parser_defaults_detect_path_to_cwd() -> None:
    args = cli._build_parser().parse_args(["detect"])

    assert args.path == "."
    assert args.verbose is False


def test_read_env_names_ignores_values(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\n"
        "STRIPE_SECRET_KEY=sk_test_123\n"
        "\n"
        "export OPENAI_API_KEY = abc\n"
        "STRIPE_SECRET_KEY=duplicate\n",
        encoding="utf-8",
    )

    assert cli.read_env_names(env_file) == ["STRIPE_SECRET_KEY", "OPENAI_API_KEY"]


def test_detect_prints_project_analysis(
    capsys: pytest.CaptureFixture[str], project_builder: ProjectBuilder, tmp_path: Path
) -> None:
    project_builder.nextjs_app()

    payload = _run(capsys, tmp_path, "detect", str(project_builder.path()))

    assert payload["primaryFramework"]["framework"] == "nextjs"
    assert payload["projectType"] == "frontend"


def test_suggest_reads_env_file_without_echoing_values(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("STRIPE_SECRET_KEY=sk_test_secret\n", encoding="utf-8")

    cli.main(["--config", str(tmp_path), "suggest", "--env-file", str(env_file)])
    out = capsys.readouterr().out

    assert "sk_test_secret" not in out
    assert json.loads(out)[0]["templateId"] == "stripe-config"


def test_validate_reports_result_and_exit_code(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    payload = _run(capsys, tmp_path, "validate", "stripe", "nextjs", "--feature", "webhooks")
    assert payload["isValid"] is True

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path), "validate", "stripe", "django"])

    assert excinfo.value.code == 1
    assert json.loads(capsys.readouterr().out)["isValid"] is False


def test_generate_preview_prints_files(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    cli.main(
        [
            "--config",
            str(tmp_path),
            "generate",
            "stripe",
            "--framework",
            "nextjs",
            "--feature",
            "webhooks",
            "--env",
            "STRIPE_SECRET_KEY",
            "--preview",
        ]
    )
    captured = capsys.readouterr()

    payload = json.loads(captured.out)
    assert [item["path"] for item in payload["files"]] == [
        "lib/stripe.ts",
        "app/api/webhooks/stripe/route.ts",
    ]
    assert "[1/7] Resolving framework" in captured.err


def test_generate_writes_files(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    output = tmp_path / "out"

    cli.main(
        [
            "--config",
            str(tmp_path),
            "generate",
            "resend",
            "--framework",
            "nextjs",
            "--env",
            "RESEND_API_KEY",
            "--output",
            str(output),
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert (output / "lib/resend.ts").exists()
    assert payload["files"][0]["path"] == "lib/resend.ts"


def test_generate_failure_exits_with_message(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path), "generate", "stripe", "--framework", "django", "--preview"])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "intgen generate failed: " in err
    assert "django" in err


def test_unknown_provider_reports_cli_error(
    capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path), "generate", "paypal", "--framework", "nextjs", "--preview"])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "intgen generate failed" in err
    assert "Run with --verbose for more details." in err
