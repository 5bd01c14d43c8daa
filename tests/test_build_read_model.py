from datetime import datetime

from ms_guide.readmodel import ReadModelLoader
from ms_guide.readmodel.metadata import latest_etl_run
from pipelines.read_model import build_read_model


def test_cli_projects_configured_app(app, make_guide, make_procedure, monkeypatch, tmp_path, capsys):
    guide = make_guide(created_at=datetime(2024, 3, 15, 10))
    make_procedure(guide)
    monkeypatch.setattr(build_read_model, "create_app", lambda name: app)
    path = str(tmp_path / "cli.duckdb")

    args = build_read_model.build_parser().parse_args(["--config", "testing", "--duckdb-path", path])
    result = build_read_model.main(args)

    assert (result.guides, result.procedures) == (1, 1)
    assert latest_etl_run(path)["run_id"] == result.run_id
    assert ReadModelLoader(duckdb_path=path).table_exists("guide_procedures")
    assert "Projection completed successfully." in capsys.readouterr().out
