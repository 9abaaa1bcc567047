import typer
import logging
from pathlib import Path
from typing import Optional
from typing_extensions import Annotated

from alnfeat.config import Config, ConfigurationError
from alnfeat.core.errors import FeatureFileError
from alnfeat.core.models import Side
from alnfeat.features.index import FeatureIndex
from alnfeat.features.readers import load_features
from alnfeat.analysis.paired import PairedFeatureProcessor
from alnfeat.pipeline import FeatureCoverageCounter
from alnfeat.reporting import ReportBuilder
from alnfeat.reporting.formatters import TSVFormatter, get_formatter

app = typer.Typer(
    name="alnfeat",
    help="Per-feature alignment statistics from PAF alignments with CIGAR strings.",
    add_completion=False,
    no_args_is_help=True
)


def setup_logging(verbose: bool, level: str = "INFO"):
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format="[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _as_str(path: Optional[Path]) -> Optional[str]:
    return str(path) if path is not None else None


def _load_config(config_file: Optional[Path], overrides: dict, require_features: bool = True) -> Config:
    config = Config()
    try:
        config.load(_as_str(config_file), overrides, require_features=require_features)
    except ConfigurationError as e:
        typer.echo(f"Configuration Error: {e}", err=True)
        raise typer.Exit(code=1)
    return config


def _build_index(config: Config, key: str, side: Side) -> Optional[FeatureIndex]:
    path = config.get(key)
    if not path:
        return None
    features = load_features(path, side, config.get("feature_format"),
                             feature_types=config.get("feature_types"))
    return FeatureIndex.build(features, side=side)


@app.command()
def count(
    alignments: Annotated[Optional[Path], typer.Option("--alignments", "-i", help="PAF file with cg:Z: tags, can be gzipped")] = None,
    query_features: Annotated[Optional[Path], typer.Option(help="Features on query sequences (BED or GFF3)")] = None,
    target_features: Annotated[Optional[Path], typer.Option(help="Features on target sequences (BED or GFF3)")] = None,
    feature_format: Annotated[Optional[str], typer.Option(help="Feature file format: bed or gff3")] = None,
    feature_types: Annotated[Optional[str], typer.Option(help="Comma-separated GFF3 feature types to keep")] = None,
    max_indel_size: Annotated[Optional[int], typer.Option("--max-indel-size", "-m", help="Indels longer than this count as large gaps")] = None,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Output file (default: stdout)")] = None,
    output_format: Annotated[Optional[str], typer.Option("--format", help="Output format: tsv or json")] = None,
    rejects: Annotated[Optional[Path], typer.Option(help="Write rejected records to this TSV file")] = None,
    workers: Annotated[Optional[int], typer.Option("--workers", "-t", help="Number of worker processes")] = None,
    batch_size: Annotated[Optional[int], typer.Option(help="Records per worker batch")] = None,
    pool_type: Annotated[Optional[str], typer.Option(help="Worker pool type: process or thread")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="YAML configuration file")] = None,
    progress: bool = False,
    verbose: bool = False
):
    """Count aligned, indel, large-gap and uncovered bases for every feature."""
    config = _load_config(config_file, {
        "alignments": _as_str(alignments),
        "query_features": _as_str(query_features),
        "target_features": _as_str(target_features),
        "feature_format": feature_format,
        "feature_types": feature_types,
        "max_indel_size": max_indel_size,
        "output_file": _as_str(output),
        "output_format": output_format,
        "rejects_file": _as_str(rejects),
        "workers": workers,
        "batch_size": batch_size,
        "pool_type": pool_type,
        "progress": progress or None,
    })
    setup_logging(verbose, config.get("log_level"))

    try:
        query_index = _build_index(config, "query_features", Side.QUERY)
        target_index = _build_index(config, "target_features", Side.TARGET)
    except FeatureFileError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    counter = FeatureCoverageCounter(
        query_index=query_index,
        target_index=target_index,
        max_indel_size=config.get("max_indel_size"),
        workers=config.get("workers"),
        batch_size=config.get("batch_size"),
        pool_type=config.get("pool_type"),
        show_progress=config.get("progress"),
    )
    result = counter.process_file(config.get("alignments"))

    rows = ReportBuilder().build(result.table, query_index, target_index)
    formatter = get_formatter(config.get("output_format"))
    formatter.format(rows, config.get("output_file"), metadata={
        "alignments": config.get("alignments"),
        "max_indel_size": config.get("max_indel_size"),
        "records_processed": result.records_processed,
        "records_rejected": result.records_rejected,
        "rejections_by_kind": result.error_counts(),
    })

    if config.get("rejects_file"):
        TSVFormatter().format_diagnostics(result.diagnostics, config.get("rejects_file"))
    if result.records_rejected:
        typer.echo(f"{result.records_rejected} of {result.records_seen} records were rejected", err=True)


@app.command()
def paired(
    input_file: Annotated[Path, typer.Option("--input", "-i", help="Joined PAF + query feature + target feature rows, can be gzipped")],
    max_indel_size: Annotated[Optional[int], typer.Option("--max-indel-size", "-m", help="Indels longer than this count as not aligned")] = None,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Output file (default: stdout)")] = None,
    rejects: Annotated[Optional[Path], typer.Option(help="Write rejected rows to this TSV file")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="YAML configuration file")] = None,
    progress: bool = False,
    verbose: bool = False
):
    """Count aligned bases for feature pairs joined to their alignments, one row per input row."""
    config = _load_config(config_file, {
        "alignments": _as_str(input_file),
        "max_indel_size": max_indel_size,
        "output_file": _as_str(output),
        "rejects_file": _as_str(rejects),
        "progress": progress or None,
    }, require_features=False)
    setup_logging(verbose, config.get("log_level"))

    processor = PairedFeatureProcessor(max_indel_size=config.get("max_indel_size"),
                                       show_progress=config.get("progress"))
    formatter = TSVFormatter()
    formatter.format_paired(processor.iter_file(config.get("alignments")), config.get("output_file"))

    if config.get("rejects_file"):
        formatter.format_diagnostics(processor.diagnostics, config.get("rejects_file"))
    if processor.diagnostics:
        typer.echo(f"{len(processor.diagnostics)} rows were rejected", err=True)


def main():
    app()


if __name__ == "__main__":
    main()
