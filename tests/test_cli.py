import json

from wotc_portal_bot.application.services import LoggingService, SqlJobStore
from wotc_portal_bot.db import Database
from wotc_portal_bot.main import build_parser, main


def _database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _store(url):
    database = Database(url)
    return database, SqlJobStore(database, LoggingService(log_level="ERROR"))


def test_parser_reads_global_and_command_options():
    args = build_parser().parse_args(
        ["--records", "export.json", "enqueue", "AZ", "emp-1", "r1", "r2", "--max-retries", "5"]
    )

    assert args.records == "export.json"
    assert (args.command, args.code, args.employer_id) == ("enqueue", "AZ", "emp-1")
    assert args.record_ids == ["r1", "r2"]
    assert args.max_retries == 5


def test_enqueue_then_status(tmp_path, capsys):
    url = _database_url(tmp_path)

    assert main(["--database", url, "enqueue", "az", "emp-1", "r1", "r2"]) == 0
    assert "✅ Enqueued job" in capsys.readouterr().out

    assert main(["--database", url, "status", "--status", "pending"]) == 0
    out = capsys.readouterr().out
    assert "1 JOB(S)" in out
    assert "AZ pending (0/2)" in out


def test_enqueue_reports_errors(tmp_path, capsys):
    url = _database_url(tmp_path)

    assert main(["--database", url, "enqueue", "ZZ", "emp-1", "r1"]) == 1
    assert "Enqueue failed" in capsys.readouterr().out
    assert main(["--database", url, "status", "no-such-job"]) == 1


def test_seed_portals_uses_environment_credentials(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("AZ_PORTAL_USERNAME", "bot@example.com")
    monkeypatch.setenv("AZ_PORTAL_PASSWORD", "s3cret")
    monkeypatch.setenv("GA_PORTAL_USERNAME", "screen")
    monkeypatch.setenv("GA_PORTAL_PASSWORD", "pin")
    monkeypatch.delenv("TX_PORTAL_USERNAME", raising=False)
    monkeypatch.delenv("TX_PORTAL_PASSWORD", raising=False)
    url = _database_url(tmp_path)

    assert main(["--database", url, "seed-portals", "AZ", "TX", "GA"]) == 0

    database, store = _store(url)
    try:
        az, tx, ga = (store.get_portal_config(code) for code in ("AZ", "TX", "GA"))
        assert az.automation_enabled and az.username == "bot@example.com"
        assert az.portal_url
        assert not tx.automation_enabled
        assert not ga.automation_enabled
    finally:
        database.dispose()
    assert "automation enabled" in capsys.readouterr().out


def test_encode_preview_writes_artifact(tmp_path, capsys):
    records_file = tmp_path / "records.json"
    records_file.write_text(
        json.dumps(
            {
                "records": [
                    {
                        "id": "rec-1",
                        "employee": {
                            "id": "rec-1",
                            "firstName": "Ana",
                            "lastName": "Diaz",
                            "ssn": "123-45-6789",
                            "dob": "1995-03-14",
                            "hireDate": "2026-01-02",
                            "startDate": "2026-01-05",
                            "address": "100 Main St",
                            "city": "Austin",
                            "state": "TX",
                            "zipCode": "78701",
                            "hourlyStartWage": "14.25",
                            "occupationCode": "35-2014",
                        },
                        "employer": {"id": "emp-1", "name": "Lone Star Diner", "ein": "74-1234567", "state": "TX"},
                        "screening": {"status": "eligible", "targetGroups": "SNAP"},
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    out_file = tmp_path / "tx.csv"

    code = main(
        ["--database", _database_url(tmp_path), "encode", "TX", "--records", str(records_file), "--out", str(out_file)]
    )

    assert code == 0
    assert "Wrote 1 rows" in capsys.readouterr().out
    lines = out_file.read_text(encoding="utf-8").split("\n")
    assert len(lines) == 2
    assert "Ana" in lines[1]


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "wotc-bot" in capsys.readouterr().out
