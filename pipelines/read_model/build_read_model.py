"""Project guides and procedures from the write database into the DuckDB read model.

Usage:
    python -m pipelines.read_model.build_read_model --config production
"""

import argparse
from pathlib import Path
from typing import Optional

from ms_guide import create_app
from ms_guide.readmodel import ReadModelLoader
from ms_guide.readmodel.data_access import READ_MODEL_CONFIG_PATH
from ms_guide.readmodel.projector import ProjectionResult, project_read_model


def main(args: argparse.Namespace) -> ProjectionResult:
    app = create_app(args.config)
    duckdb_path: Optional[str] = args.duckdb_path or app.config.get("DUCKDB_PATH")

    with app.app_context():
        loader = ReadModelLoader(duckdb_path=duckdb_path, config_path=args.layout)
        print(f"Projecting read model into {loader.duckdb_path}...")
        result = project_read_model(loader)

    print(f"Guides projected: {result.guides}")
    print(f"Procedures projected: {result.procedures}")
    print(f"Run id: {result.run_id}")
    print("Projection completed successfully.")
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build the DuckDB guide read model.")
    parser.add_argument("--config", default="development", help="App config name (development, testing, production).")
    parser.add_argument("--duckdb-path", dest="duckdb_path", default=None, help="Override DuckDB file path.")
    parser.add_argument(
        "--layout", type=Path, default=READ_MODEL_CONFIG_PATH, help="Read-model table layout YAML."
    )
    return parser


if __name__ == "__main__":
    main(build_parser().parse_args())
