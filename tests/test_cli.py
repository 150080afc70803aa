import io
import json

import cli

from conftest import SCENARIO


def test_run_once_json():
    body = json.loads(cli.run_once(SCENARIO, output="json"))
    assert body["threatLevel"] == "HIGH"
    assert body["incidentType"] == "Payment Fraud"


def test_run_once_summary_and_advanced():
    basic = cli.run_once(SCENARIO)
    assert basic.startswith("[basic] HIGH risk (70/100) - Payment Fraud")

    advanced = cli.run_once(SCENARIO, advanced=True)
    assert advanced.startswith("[advanced] HIGH risk (80/100)")


def test_run_once_report():
    report = cli.run_once(SCENARIO, advanced=True, output="report")
    assert "Report level: Advanced / Investigation" in report
    assert "VERIFICATION SNAPSHOT" in report


def test_main_highlight(capsys):
    assert cli.main(["--text", SCENARIO, "--highlight"]) == 0
    out = capsys.readouterr().out
    assert "[HIGH: $500]" in out
    assert "[MEDIUM: suspended]" in out


def test_main_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(SCENARIO))
    assert cli.main(["--text", "-", "--output", "json"]) == 0
    assert json.loads(capsys.readouterr().out)["riskScore"] == 70


def test_main_blank_text():
    assert cli.main(["--text", "   "]) == 2


def test_main_configuration_error(default_settings, capsys):
    default_settings.LLM_PROVIDER = "anthropic"
    default_settings.ANTHROPIC_API_KEY = ""
    assert cli.main(["--text", SCENARIO]) == 1
    assert "ANTHROPIC_API_KEY" in capsys.readouterr().err


def test_interactive_session(monkeypatch, capsys):
    lines = iter([SCENARIO, "advanced", "report", "Lunch moved to noon, see you there", "exit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))
    cli.run_interactive()
    out = capsys.readouterr().out

    assert "[HIGH: $500]" in out
    assert "[basic] HIGH risk (70/100)" in out
    assert "[advanced] HIGH risk (80/100)" in out
    assert "Report level: Advanced / Investigation" in out
    assert "[basic] LOW risk" in out


def test_highlight_goes_through_controller(monkeypatch, capsys):
    seen = []
    original = cli.PipelineController.preview

    def recording_preview(self, text):
        seen.append(text)
        return original(self, text)

    monkeypatch.setattr(cli.PipelineController, "preview", recording_preview)
    assert cli.main(["--text", SCENARIO, "--highlight"]) == 0
    assert seen == [SCENARIO]
    assert "[HIGH: bitcoin]" in capsys.readouterr().out
