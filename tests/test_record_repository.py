import json
import os

import pytest

from fakes import build_record
from wotc_portal_bot.application.services import InMemoryRecordRepository, JsonRecordRepository
from wotc_portal_bot.application.services.record_repository import parse_records


def _record_json(record_id, first_name="Ana"):
    return {
        "id": record_id,
        "employee": {"id": record_id, "firstName": first_name, "lastName": "Diaz", "dob": "03/14/1995"},
        "employer": {"employerId": "emp-1", "companyName": "Desert Foods LLC"},
        "screening": {"status": "Eligible", "target_groups": ["SNAP", "VETERAN"]},
    }


def test_in_memory_load_skips_unknown_ids():
    repository = InMemoryRecordRepository([build_record(1)])

    assert list(repository.load(["rec-01", "rec-99"])) == ["rec-01"]


def test_parse_records_accepts_list_or_wrapper():
    [record] = parse_records({"records": [_record_json("r1")]})

    assert record.record_id == "r1"
    assert record.employee.date_of_birth.isoformat() == "1995-03-14"
    assert record.employer.name == "Desert Foods LLC"
    assert record.screening.status == "eligible"
    assert record.screening.target_groups == ("SNAP", "VETERAN")
    assert parse_records([_record_json("r2")])[0].record_id == "r2"
    with pytest.raises(ValueError):
        parse_records({"records": "nope"})


def test_json_repository_reloads_when_file_changes(tmp_path, logger):
    path = tmp_path / "records.json"
    path.write_text(json.dumps([_record_json("r1")]), encoding="utf-8")
    repository = JsonRecordRepository(str(path), logger)

    assert repository.load(["r1"])["r1"].employee.first_name == "Ana"

    path.write_text(json.dumps([_record_json("r1", "Bea"), _record_json("r2")]), encoding="utf-8")
    stamp = os.path.getmtime(path) + 5
    os.utime(path, (stamp, stamp))

    assert repository.load(["r1"])["r1"].employee.first_name == "Bea"
    assert len(repository.all_records()) == 2


def test_json_repository_missing_file_is_empty_and_bad_json_raises(tmp_path, logger):
    missing = JsonRecordRepository(str(tmp_path / "absent.json"), logger)
    assert missing.load(["r1"]) == {}

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        JsonRecordRepository(str(broken), logger).load(["r1"])
