import typer
import logging

from gdmstudy.errors import GDMStudyError
from gdmstudy.utils import setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer()


@app.callback()
def main(log_level: str = typer.Option("INFO", "--log-level", help="Logging level")):
    """Synthetic gestational diabetes cohort: generation and summaries"""
    setup_logging(log_level)


@app.command()
def data_gen(
    config_file: str = typer.Option(None, "--config", help="Configuration file path (built-in defaults when omitted)"),
    n_subjects: int = typer.Option(None, "--n-subjects", help="Override number of subjects from config"),
    seed: int = typer.Option(None, "--seed", help="Override seed from config"),
    out: str = typer.Option(None, "--out", help="Override output directory from config"),
    fmt: str = typer.Option(None, "--format", help="Override output format from config (parquet/csv)"),
):
    """Generate the synthetic cohort and write subject and long-form tables"""
    from gdmstudy.data_gen import generate_dataset

    try:
        paths = generate_dataset(
            config_file=config_file,
            n_subjects=n_subjects,
            seed=seed,
            out=out,
            fmt=fmt,
        )
    except (GDMStudyError, FileNotFoundError) as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=1)

    for name, path in paths.items():
        typer.echo(f"{name}: {path}")


@app.command()
def summarize(
    config_file: str = typer.Option(None, "--config", help="Configuration file path (built-in defaults when omitted)"),
    n_subjects: int = typer.Option(None, "--n-subjects", help="Override number of subjects from config"),
    seed: int = typer.Option(None, "--seed", help="Override seed from config"),
    out: str = typer.Option(None, "--out", help="Also write the summaries as CSV to this directory"),
):
    """Generate the cohort and print grouped summary statistics"""
    from gdmstudy import aggregate
    from gdmstudy.config import load_config, resolve_data_gen_config
    from gdmstudy.data_gen import SyntheticDataGenerator
    from gdmstudy.io.paths import ensure_dir, get_summary_path

    try:
        config = load_config("data_gen", config_file) if config_file else resolve_data_gen_config()
        subjects = SyntheticDataGenerator(config).generate(seed=seed, n=n_subjects)
        long_form = aggregate.to_long_form(subjects)
        summaries = {
            "summary_table": aggregate.build_wide_summary_table(subjects),
            "diagnosis_counts": aggregate.diagnosis_counts(subjects),
            "baseline_by_group": aggregate.summarize_baseline_by_sex_and_diagnosis(subjects),
            "glucose_by_timepoint": aggregate.summarize_by_timepoint(long_form),
        }
    except (GDMStudyError, FileNotFoundError) as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=1)

    for name, summary in summaries.items():
        typer.echo(f"\n{name}")
        typer.echo(summary.round(2).to_string(index=False))

    if out is not None:
        out_dir = ensure_dir(out)
        for name, summary in summaries.items():
            summary.to_csv(get_summary_path(out_dir, name), index=False)
        logger.info("Wrote %d summaries to %s", len(summaries), out_dir)


if __name__ == "__main__":
    app()
