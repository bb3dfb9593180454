"""Command-line interface for DataDash: profile sheets, suggest joins, flatten and report."""
import typer
from loguru import logger
from pathlib import Path
from typing import Optional
import sys

from datadash.config import AppConfig, DataModel, load_config_from_file, load_data_model, save_data_model
from datadash.data.dataset import ColumnType, Dataset
from datadash.data.ingestion import load_tables
from datadash.modeling.join_engine import execute_data_model, validate_data_model
from datadash.modeling.suggester import suggest_joins
from datadash.reporting.dashboard import export_csv
from datadash.reporting.quality import build_quality_report

app = typer.Typer(help="DataDash CLI - profile, join and report on spreadsheet data")

DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

CONFIG_HELP = "YAML configuration (profiler thresholds, suggestion policy, model, log level)"


def setup_logging(log_level: str) -> None:
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=log_level.upper(), format=LOG_FORMAT)


def _load_config(ctx: typer.Context, config_path: Optional[Path]) -> AppConfig:
    """Load the application config; its log level applies unless --log-level was given."""
    if config_path is None:
        return AppConfig()

    if not config_path.exists():
        typer.echo(f"❌ Configuration file not found: {config_path}", err=True)
        raise typer.Exit(code=2)

    try:
        config = load_config_from_file(str(config_path))
    except Exception as e:
        logger.exception("Failed to load configuration")
        typer.echo(f"❌ Failed to load configuration: {e}", err=True)
        raise typer.Exit(code=1)

    if not (ctx.obj or {}).get('log_level'):
        setup_logging(config.log_level)
    return config


def _load(file: Path, config: AppConfig):
    if not file.exists():
        typer.echo(f"❌ Input file not found: {file}", err=True)
        raise typer.Exit(code=2)
    try:
        return load_tables(str(file), config.profiler)
    except Exception as e:
        logger.exception("Failed to load input file")
        typer.echo(f"❌ Failed to load {file}: {e}", err=True)
        raise typer.Exit(code=1)

def _format_value(value) -> str:
    if value is None:
        return '-'
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


def _echo_dataset(dataset: Dataset) -> None:
    typer.echo(f"📊 {dataset.file_name}: {dataset.row_count} rows × {len(dataset.columns)} cols")
    typer.echo(f"   Date column: {dataset.primary_date_column or '-'}")
    typer.echo(f"   Measure column: {dataset.primary_measure_column or '-'}")
    typer.echo(f"   Dimensions: {', '.join(dataset.dimensions) or '-'}")
    for col in dataset.columns:
        line = (f"   • {col.name} [{col.inferred_type.value}] "
                f"nulls={col.null_count} unique={col.unique_count}")
        if col.inferred_type in (ColumnType.NUMBER, ColumnType.DATE):
            line += f" min={_format_value(col.min)} max={_format_value(col.max)}"
        if col.inferred_type == ColumnType.NUMBER:
            line += f" mean={_format_value(col.mean)}"
        typer.echo(line)


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l",
        help=f"Logging level (DEBUG, INFO, WARNING, ERROR); defaults to the config's level or {DEFAULT_LOG_LEVEL}"
    )
) -> None:
    """Configure logging for every command."""
    ctx.obj = {'log_level': log_level}
    setup_logging(log_level or DEFAULT_LOG_LEVEL)


@app.command()
def profile(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="CSV or Excel file to profile"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP)
) -> None:
    """Profile every sheet of a file."""
    config = _load_config(ctx, config_path)
    tables = _load(file, config)
    for table in tables.values():
        _echo_dataset(table)
        typer.echo("")


@app.command()
def suggest(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="CSV or Excel file"),
    base: str = typer.Option(..., "--base", "-b", help="Sheet to use as the base (fact) table"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the suggested model as YAML"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP)
) -> None:
    """Suggest joins from the base sheet to the other sheets."""
    config = _load_config(ctx, config_path)
    tables = _load(file, config)
    if base not in tables:
        typer.echo(f"❌ Sheet not found: {base}. Available: {', '.join(tables)}", err=True)
        raise typer.Exit(code=1)

    joins = suggest_joins(base, tables, config.suggester)
    if not joins:
        typer.echo(f"ℹ️  No joins suggested for {base}")
    for join in joins:
        typer.echo(f"🔗 {base}.{join.left_column} -> {join.right_table_id}.{join.right_column} ({join.join_type})")

    if output:
        save_data_model(DataModel(base_table_id=base, joins=joins), str(output))
        typer.echo(f"💾 Model saved to: {output}")


def _resolve_model(model_path: Optional[Path], config: AppConfig) -> DataModel:
    """--model wins over the config's model section."""
    if model_path is None:
        if config.model is None:
            typer.echo("❌ No data model: pass --model or a config with a 'model' section", err=True)
            raise typer.Exit(code=2)
        return config.model

    if not model_path.exists():
        typer.echo(f"❌ Model file not found: {model_path}", err=True)
        raise typer.Exit(code=2)
    try:
        return load_data_model(str(model_path))
    except Exception as e:
        logger.exception("Failed to load data model")
        typer.echo(f"❌ Failed to load data model: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def join(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="CSV or Excel file"),
    model_path: Optional[Path] = typer.Option(None, "--model", "-m", help="YAML data model (defaults to the config's model)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Export the unified rows to CSV"),
    strict: bool = typer.Option(False, "--strict", help="Fail on joins that reference missing tables or columns"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP)
) -> None:
    """Execute a data model and print the unified dataset."""
    config = _load_config(ctx, config_path)
    model = _resolve_model(model_path, config)

    tables = _load(file, config)
    try:
        problems = validate_data_model(tables, model, strict=strict)
        for problem in problems:
            typer.echo(f"⚠️  {problem}", err=True)
        dataset = execute_data_model(tables, model)
    except Exception as e:
        logger.exception("Join execution failed")
        typer.echo(f"❌ Join failed: {e}", err=True)
        raise typer.Exit(code=1)

    _echo_dataset(dataset)
    if output:
        export_csv(dataset, str(output))
        typer.echo(f"💾 Exported to: {output}")


@app.command()
def report(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="CSV or Excel file"),
    model_path: Optional[Path] = typer.Option(None, "--model", "-m", help="Report on the unified dataset of this model"),
    sheet: Optional[str] = typer.Option(None, "--sheet", "-s", help="Sheet to report on (defaults to the first)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP)
) -> None:
    """Print a data quality report."""
    config = _load_config(ctx, config_path)
    model = _resolve_model(model_path, config) if model_path else None

    tables = _load(file, config)
    try:
        if model:
            dataset = execute_data_model(tables, model)
        else:
            name = sheet or next(iter(tables))
            if name not in tables:
                raise KeyError(f"Sheet '{name}' not found")
            dataset = tables[name]
    except Exception as e:
        logger.exception("Report failed")
        typer.echo(f"❌ Report failed: {e}", err=True)
        raise typer.Exit(code=1)

    quality = build_quality_report(dataset)
    typer.echo(f"🛡️  Quality report: {quality.file_name}")
    typer.echo(f"   {quality.row_count} rows, {quality.column_count} columns, "
               f"{quality.completeness:.1f}% complete")
    for col in quality.columns:
        status = "✅" if col.is_complete else "⚠️ "
        typer.echo(f"   {status} {col.name} [{col.inferred_type.value}] "
                   f"{col.completeness:.1f}% complete, {col.unique_count} unique")


@app.command()
def info():
    """Show information about DataDash."""
    typer.echo("📈 DataDash - Spreadsheet analytics engine")
    typer.echo("")
    typer.echo("Key Features:")
    typer.echo("• Column type inference and profiling")
    typer.echo("• Join suggestions from naming and key uniqueness")
    typer.echo("• Multi-sheet hash joins into one flat dataset")
    typer.echo("• Data quality reports and dashboard aggregates")


if __name__ == '__main__':
    app()
