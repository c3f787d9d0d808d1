from __future__ import annotations

from pathlib import Path

import typer

from fines_dashboard.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from fines_dashboard.features.filters import ALL, FilterState, parse_year_selection
from fines_dashboard.io.write import write_summary
from fines_dashboard.logging import configure_logging
from fines_dashboard.paths import build_output_paths
from fines_dashboard.pipeline.comparison import compare_locations
from fines_dashboard.pipeline.dashboard import load_dashboard_tables, prepare_dataset, run_dashboard

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _require_data_path(data: Path | None, cfg: AppConfig) -> Path:
    if data is not None:
        return data
    if cfg.input.dataset_path:
        return Path(cfg.input.dataset_path)
    raise typer.BadParameter(
        "Missing --data. Pass a CSV/XLSX path, set input.dataset_path in config, "
        "or export FINES_DASHBOARD_DATA."
    )


def _parse_dimensions(values: list[str] | None) -> dict[str, str]:
    dimensions: dict[str, str] = {}
    for raw in values or []:
        field_name, separator, value = raw.partition("=")
        if not separator or not field_name.strip():
            raise typer.BadParameter(f"Dimension filters use FIELD=VALUE, got: {raw}")
        dimensions[field_name.strip()] = value
    return dimensions


def _parse_heatmap(value: str | None) -> tuple[str, str] | None:
    if value is None:
        return None
    row_field, separator, column_field = value.partition(",")
    if not separator or not row_field.strip() or not column_field.strip():
        raise typer.BadParameter(f"--heatmap expects ROW_FIELD,COLUMN_FIELD, got: {value}")
    return row_field.strip(), column_field.strip()


def _build_filters(
    year: str,
    category: str,
    detection: str,
    max_year: int | None,
    dimension: list[str] | None,
) -> FilterState:
    try:
        parsed_year = parse_year_selection(year)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return FilterState(
        year=parsed_year,
        category=category,
        detection=detection,
        max_year=max_year,
        dimensions=_parse_dimensions(dimension),
    )


@app.command()
def profile(
    data: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Infer the dataset schema and write it to summary/schema.json."""
    configure_logging()
    cfg = _load_app_config(config)
    data = _require_data_path(data, cfg)
    dataset = prepare_dataset(data, cfg)
    paths = build_output_paths(out)
    schema = dataset.schema
    write_summary(
        {
            "records_total": len(dataset),
            "schema": schema.to_dict(),
            "options": {
                "years": dataset.year_options(),
                "categories": dataset.category_options(),
                "detections": dataset.detection_options(),
            },
        },
        paths.summary_path("schema"),
    )
    typer.echo(f"Profile complete. Records: {len(dataset)}")
    typer.echo(f"- year_field: {schema.year_field or '-'}")
    typer.echo(f"- categorical_field: {schema.categorical_field or '-'}")
    typer.echo(f"- numeric_fields: {', '.join(schema.numeric_fields) or '-'}")


@app.command()
def aggregate(
    data: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    year: str = typer.Option(ALL, help="Year to select, or 'All'."),
    category: str = typer.Option(ALL, help="Value of the inferred categorical field."),
    detection: str = typer.Option(ALL, help="Detection method label, e.g. 'Camera fined'."),
    max_year: int | None = typer.Option(None, help="Keep rows up to and including this year."),
    dimension: list[str] | None = typer.Option(
        None,
        help="Extra FIELD=VALUE equality filter; repeatable.",
    ),
    heatmap: str | None = typer.Option(
        None,
        help="ROW_FIELD,COLUMN_FIELD for the heatmap cross-tab.",
    ),
) -> None:
    """Apply filters and write per-panel aggregate tables."""
    configure_logging()
    cfg = _load_app_config(config)
    data = _require_data_path(data, cfg)
    filters = _build_filters(year, category, detection, max_year, dimension)
    written = run_dashboard(
        data_path=data,
        out_dir=out,
        config=cfg,
        filters=filters,
        heatmap_fields=_parse_heatmap(heatmap),
    )
    typer.echo(f"Aggregation complete. Outputs: {', '.join(sorted(written.keys()))}")


@app.command()
def compare(
    data: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Chi-square test of Major Cities vs Regional fines for the target metric."""
    configure_logging()
    cfg = _load_app_config(config)
    data = _require_data_path(data, cfg)
    dataset = prepare_dataset(data, cfg)
    comparison = compare_locations(dataset.frame, cfg.location)
    paths = build_output_paths(out)
    write_summary(comparison.to_dict(), paths.summary_path("location_comparison"))
    typer.echo("Comparison complete")
    typer.echo(f"- chi2: {comparison.result.chi2:.4f}")
    typer.echo(f"- p: {comparison.result.p:.6f}")


@app.command("run-all")
def run_all_command(
    data: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    heatmap: str | None = typer.Option(
        None,
        help="ROW_FIELD,COLUMN_FIELD for the heatmap cross-tab.",
    ),
) -> None:
    """Write unfiltered panel tables plus the location comparison."""
    configure_logging()
    cfg = _load_app_config(config)
    data = _require_data_path(data, cfg)
    written = run_dashboard(
        data_path=data,
        out_dir=out,
        config=cfg,
        heatmap_fields=_parse_heatmap(heatmap),
        include_comparison=True,
    )
    typer.echo(f"Run complete. Summary: {written['summary']}")


@app.command()
def tables(
    out: Path = typer.Option(Path("out"), exists=True, file_okay=False, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """List the panel tables a previous run wrote, with their shapes."""
    configure_logging()
    cfg = _load_app_config(config)
    loaded = load_dashboard_tables(out, cfg)
    if not loaded:
        typer.echo(f"No {cfg.outputs.tables_format} tables under {out}")
        raise typer.Exit(code=1)
    for name, table in loaded.items():
        typer.echo(f"- {name}: {len(table)} rows x {table.shape[1]} columns")


if __name__ == "__main__":
    app()
