"""Tests for JSON persistence, spreadsheet import and backups."""

import io
import json

import pandas as pd
import pytest

import storage
from conftest import make_config
from models import AreaBlock, Block, BlockScope, Demand, KnowledgeArea, Period
from solver import generate_timetable


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(storage, "DATA_DIR", tmp_path)
    return tmp_path


def test_missing_files_give_defaults():
    assert storage.load_config() == storage.default_config()
    assert storage.load_demands() == []
    assert storage.load_blocks() == []
    assert storage.load_areas() == []
    assert storage.load_area_blocks() == []
    assert storage.load_history() == []


def test_config_round_trip():
    cfg = make_config(days=3, periods=4, max_lessons_per_subject_per_day=1, relax_daily_cap=False, max_suggestions=5)
    storage.save_config(cfg)
    assert storage.load_config() == cfg


def test_corrupted_config_falls_back_to_default(data_dir):
    (data_dir / storage.CONFIG_FILE).write_text("{not json", encoding="utf-8")
    assert storage.load_config() == storage.default_config()

    (data_dir / storage.CONFIG_FILE).write_text(json.dumps({"periods": [{"start": "07:00"}]}), encoding="utf-8")
    assert storage.load_config() == storage.default_config()


def test_inputs_round_trip():
    demands = [Demand("Ana", "6A", "Math", 3), Demand("Bia", "7B", "Art", 1)]
    blocks = [Block(BlockScope.TEACHER, "Mon", [1, 2], target="Ana", reason="Course")]
    areas = [KnowledgeArea("exact", "Exact Sciences", ["Ana"])]
    area_blocks = [AreaBlock("exact", "Fri", [3], reason="Planning")]

    storage.save_demands(demands)
    storage.save_blocks(blocks)
    storage.save_areas(areas)
    storage.save_area_blocks(area_blocks)

    assert storage.load_demands() == demands
    assert storage.load_blocks() == blocks
    assert storage.load_areas() == areas
    assert storage.load_area_blocks() == area_blocks


def test_history_is_newest_first():
    storage.append_history("generate", "all", "first run")
    storage.append_history("generate", "all", "second run", details="2 conflicts")
    history = storage.load_history()
    assert [h["summary"] for h in history] == ["second run", "first run"]
    assert history[0]["details"] == "2 conflicts"


def test_csv_assignments_import():
    csv = io.StringIO("Docente,Turma,Disciplina,Aulas\nAna,6A,Matemática,3\nBia,7B,Arte,0\nCaio,7B,História,\n")
    demands = storage.load_assignments_table(csv, filename="atribuicoes.csv")
    assert demands == [Demand("Ana", "6A", "Matemática", 3)]


def test_excel_assignments_import(tmp_path):
    path = tmp_path / "assignments.xlsx"
    pd.DataFrame([
        {"teacher": "Ana", "class": "6A", "subject": "Math", "lessons": 2},
        {"teacher": "Bia", "class": "6A", "subject": "Art", "lessons": 1},
    ]).to_excel(path, index=False)
    assert storage.load_assignments_table(path) == [
        Demand("Ana", "6A", "Math", 2),
        Demand("Bia", "6A", "Art", 1),
    ]


BACKUP = {
    "version": "2.1",
    "atribuicoes": [
        {"docente": "Ana", "turma": "6A", "disciplina": "Matemática", "aulas": 4},
        {"docente": "Bia", "turma": "6A", "disciplina": "Arte", "aulas": 0},
    ],
    "bloqueios": [
        {"tipo": "geral", "dia": "segunda", "aulas": [1], "motivo": "Reunião"},
        {"tipo": "docente", "entidade": "Ana", "dia": "sexta", "aulas": [2, 3]},
        {"tipo": "sala", "entidade": "Lab", "dia": "terca", "aulas": [1]},
    ],
    "areasConhecimento": [{"id": "exatas", "nome": "Exatas", "docentes": ["Ana"]}],
    "bloqueiosArea": [{"areaId": "exatas", "dia": "quarta", "aulas": [4], "motivo": "Planejamento"}],
}


def test_backup_parsing(config):
    data = storage.parse_backup(BACKUP, config)
    assert data.version == "2.1"
    assert data.demands == [Demand("Ana", "6A", "Matemática", 4)]
    assert data.blocks == [
        Block(BlockScope.GENERAL, "Mon", [1], reason="Reunião"),
        Block(BlockScope.TEACHER, "Fri", [2, 3], target="Ana"),
    ]
    assert data.areas == [KnowledgeArea("exatas", "Exatas", ["Ana"])]
    assert data.area_blocks == [AreaBlock("exatas", "Wed", [4], reason="Planejamento")]


def test_backup_file_feeds_the_scheduler(tmp_path, config):
    path = tmp_path / "backup.json"
    path.write_text(json.dumps(BACKUP), encoding="utf-8")
    data = storage.load_backup(path, config)
    result = generate_timetable(data.demands, config, data.blocks, data.areas, data.area_blocks)
    assert result.placed == [4]
    assert not result.grids["6A"].cell((0, 0)).is_occupied


@pytest.mark.parametrize(
    "payload",
    [
        {"atribuicoes": [{"docente": "Ana", "turma": "6A", "disciplina": "Arte", "aulas": 1}]},
        {"version": "1.0"},
        {"version": "1.0", "atribuicoes": [], "bloqueios": []},
        ["not", "a", "dict"],
    ],
)
def test_unusable_backups_are_rejected(payload, config):
    with pytest.raises(storage.BackupFormatError):
        storage.parse_backup(payload, config)


def test_backup_that_is_not_json(config):
    with pytest.raises(storage.BackupFormatError):
        storage.load_backup(io.StringIO("version: 1"), config)


def test_result_export_is_json_serializable():
    cfg = make_config(days=1, periods=3)
    cfg.periods[2] = Period(7, "09:00", "09:50")
    blocks = [
        Block(BlockScope.CLASS, "Mon", [1, 2], target="7B"),
        Block(BlockScope.TEACHER, "Mon", [2], target="Ana"),
    ]
    records = [
        {"teacher": "Ana", "class": "7B", "subject": "Math", "lessons": 1},
        {"teacher": "Aaron", "class": "6A", "subject": "Portuguese", "lessons": 2},
        {"teacher": "Ana", "class": "6A", "subject": "Math", "lessons": 1},
    ]
    exported = json.loads(json.dumps(storage.result_to_dict(generate_timetable(records, cfg, blocks))))

    assert list(exported["grids"]) == ["6A", "7B"]
    assert exported["grids"]["7B"][0] == {
        "day": "Mon", "period": 1, "state": "blocked", "teacher": "", "subject": "", "reason": "Class block",
    }
    assert exported["grids"]["7B"][2]["period"] == 7
    assert exported["analysis"]["total_conflicts"] == 1
    assert exported["analysis"]["unplaced_lessons"] == 1
    [suggestion] = exported["analysis"]["conflicts"][0]["suggestions"]
    assert suggestion["origin"] == {"class": "6A", "day": "Mon", "period": 1, "teacher": "Aaron", "subject": "Portuguese"}
    assert suggestion["destination"] == {"class": "6A", "day": "Mon", "period": 7}


def test_malformed_backup_entries_are_skipped(config):
    payload = {
        "version": "2.1",
        "atribuicoes": ["oops", 7, {"docente": "Ana", "turma": "6A", "disciplina": "Arte", "aulas": 2}],
        "bloqueios": [
            "oops",
            {"tipo": "geral", "dia": "segunda", "aulas": ["1a"]},
            {"tipo": "docente", "entidade": "Ana", "dia": "terca", "aulas": 3},
            {"tipo": "turma", "entidade": " 6A ", "dia": "quarta", "aulas": ["2"]},
        ],
        "areasConhecimento": [None, {"id": "exatas", "docentes": "Ana"}, {"id": "artes", "docentes": [" Ana "]}],
        "bloqueiosArea": [{"areaId": "artes", "dia": "quinta", "aulas": [None]}],
    }
    data = storage.parse_backup(payload, config)
    assert data.demands == [Demand("Ana", "6A", "Arte", 2)]
    assert data.blocks == [Block(BlockScope.CLASS, "Wed", [2], target="6A")]
    assert data.areas == [KnowledgeArea("artes", "", ["Ana"])]
    assert data.area_blocks == []


def test_backup_with_only_malformed_entries_is_rejected(config):
    payload = {"version": "1", "bloqueios": [{"tipo": "geral", "dia": "segunda", "aulas": ["1a"]}, "oops"]}
    with pytest.raises(storage.BackupFormatError):
        storage.parse_backup(payload, config)


def test_backup_section_that_is_not_a_list_is_ignored(config):
    payload = {"version": "1", "bloqueios": {"tipo": "geral"}, "atribuicoes": BACKUP["atribuicoes"]}
    data = storage.parse_backup(payload, config)
    assert data.blocks == []
    assert len(data.demands) == 1


def test_backup_that_is_not_utf8(tmp_path, config):
    raw = b'{"version": "1", "motivo": "Reuni\xe3o"}'
    with pytest.raises(storage.BackupFormatError):
        storage.load_backup(io.BytesIO(raw), config)
    path = tmp_path / "latin1.json"
    path.write_bytes(raw)
    with pytest.raises(storage.BackupFormatError):
        storage.load_backup(path, config)
