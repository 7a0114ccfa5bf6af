"""Typer CLI entrypoint for screening runs."""

from __future__ import annotations

import contextlib
import json
from pathlib import Path
from typing import Any, Iterator, List, Optional

import typer

from .config import ConfigManager
from .container import ScreeningContainer, create_container
from .errors import AutoHireError
from .logging import configure_logging

app = typer.Typer(help="AutoHire resume screening CLI.", no_args_is_help=True)


@app.callback()
def main_options(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    database_url: Optional[str] = typer.Option(None, envvar="AUTOHIRE_DATABASE_URL", help="SQLAlchemy database URL."),
    scoring_endpoint: Optional[str] = typer.Option(None, envvar="ML_BASE_URL", help="Scoring service base URL."),
    scoring_api_key: Optional[str] = typer.Option(None, envvar="ML_API_KEY", help="Scoring service API key."),
    storage_dir: Optional[Path] = typer.Option(None, file_okay=False, help="Directory holding resume files."),
    log_level: Optional[str] = typer.Option(None, help="Log level for structured logging; overrides the config file."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
) -> None:
    settings: dict[str, Any] = {}
    if config:
        try:
            settings = ConfigManager.load_path(config)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--config") from exc

    if database_url:
        settings.setdefault("database", {})["url"] = database_url
    if scoring_endpoint:
        settings.setdefault("scoring", {})["endpoint"] = scoring_endpoint
    if scoring_api_key:
        settings.setdefault("scoring", {})["api_key"] = scoring_api_key
    if storage_dir:
        settings.setdefault("content", {})["base_dir"] = str(storage_dir)

    configure_logging(log_level or settings.get("log_level", "INFO"))
    ctx.obj = create_container(settings=settings, audit_log=audit_log)


@app.command("init-db")
def init_db(ctx: typer.Context) -> None:
    """Create database tables."""
    container: ScreeningContainer = ctx.obj
    container.database().init_db()
    typer.echo("Database initialized.")


@app.command("create-job")
def create_job(
    ctx: typer.Context,
    title: str = typer.Option(..., help="Job title."),
    description: str = typer.Option(..., help="Job description."),
    required_skill: List[str] = typer.Option([], "--required-skill", help="Required skill (repeatable)."),
    nice_skill: List[str] = typer.Option([], "--nice-skill", help="Nice-to-have skill (repeatable)."),
    experience_years: Optional[float] = typer.Option(None, help="Required years of experience."),
    company_id: Optional[str] = typer.Option(None, help="Owning company id."),
) -> None:
    """Post a job opening and print its id and code."""
    container: ScreeningContainer = ctx.obj
    with _domain_errors():
        job = container.job_service().create_job(
            {
                "company_id": company_id,
                "title": title,
                "description": description,
                "required_skills": required_skill,
                "nice_to_have_skills": nice_skill,
                "experience_years": experience_years,
            }
        )
    _echo_json({"id": job.id, "job_code": job.job_code})


@app.command("add-resume")
def add_resume(
    ctx: typer.Context,
    job_id: str = typer.Option(..., help="Job id."),
    candidate_id: str = typer.Option(..., help="Candidate id."),
    file_ref: str = typer.Option(..., "--file", help="Resume file path relative to the storage directory."),
    candidate_name: str = typer.Option("", help="Candidate display name."),
) -> None:
    """Register a submitted resume."""
    container: ScreeningContainer = ctx.obj
    with _domain_errors():
        resume = container.job_service().submit_resume(
            {
                "job_id": job_id,
                "candidate_id": candidate_id,
                "candidate_name": candidate_name,
                "file_ref": file_ref,
            }
        )
    _echo_json({"id": resume.id})


@app.command()
def screen(
    ctx: typer.Context,
    job_id: str = typer.Option(..., help="Job id."),
    resume_id: List[str] = typer.Option([], "--resume-id", help="Resume id (repeatable); defaults to all resumes."),
    timeout: Optional[float] = typer.Option(None, help="Seconds to wait for the run to finish."),
) -> None:
    """Run AI screening over resumes of a job and print the run record."""
    container: ScreeningContainer = ctx.obj
    with _domain_errors():
        job_service = container.job_service()
        job_service.get_job(job_id)
        ids = list(resume_id) or [r.id for r in job_service.list_resumes(job_id)]
        run = container.coordinator().run(job_id, ids, timeout=timeout)
    _echo_json(run.model_dump(mode="json"))
    if run.status == "failed":
        raise typer.Exit(code=1)


@app.command("run-status")
def run_status(ctx: typer.Context, run_id: str = typer.Argument(..., help="Screening run id.")) -> None:
    """Print progress of a screening run."""
    container: ScreeningContainer = ctx.obj
    with _domain_errors():
        progress = container.coordinator().get_progress(run_id)
    _echo_json(progress)


@app.command()
def candidates(
    ctx: typer.Context,
    job_id: str = typer.Option(..., help="Job id."),
    min_score: Optional[float] = typer.Option(None, help="Lowest composite score to include."),
    max_score: Optional[float] = typer.Option(None, help="Highest composite score to include."),
    target_score: Optional[float] = typer.Option(None, help="Include scores at or above this value."),
    status: Optional[str] = typer.Option(None, help="Screening status."),
    stage: Optional[str] = typer.Option(None, help="Pipeline stage."),
    skill: Optional[str] = typer.Option(None, help="Matched skill."),
    sort_by: str = typer.Option("ai_score", help="Sort field."),
    sort_order: str = typer.Option("desc", help="asc or desc."),
    page: int = typer.Option(1, help="Page number, starting at 1."),
    limit: int = typer.Option(50, help="Page size."),
) -> None:
    """List scored candidates of a job."""
    container: ScreeningContainer = ctx.obj
    criteria = {
        "min_score": min_score,
        "max_score": max_score,
        "target_score": target_score,
        "status": status,
        "pipeline_stage": stage,
        "skill": skill,
        "sort_by": sort_by,
        "sort_order": sort_order,
        "page": page,
        "limit": limit,
    }
    with _domain_errors():
        result = container.job_service().filter_candidates(job_id, criteria)
    _echo_json(result.model_dump(mode="json"))


@app.command()
def advance(
    ctx: typer.Context,
    stage: str = typer.Option(..., help="Target pipeline stage."),
    resume_id: List[str] = typer.Option(..., "--resume-id", help="Resume id (repeatable)."),
    skip: bool = typer.Option(False, "--skip", help="Allow jumping over intermediate stages."),
    actor: Optional[str] = typer.Option(None, help="Recruiter performing the move."),
) -> None:
    """Move resumes to another pipeline stage."""
    container: ScreeningContainer = ctx.obj
    with _domain_errors():
        resumes = container.stage_service().advance(resume_id, stage, skip=skip, actor=actor)
    _echo_json([{"id": r.id, "pipeline_stage": r.pipeline_stage} for r in resumes])


@contextlib.contextmanager
def _domain_errors() -> Iterator[None]:
    """Translate domain errors into a non-zero exit."""
    try:
        yield
    except AutoHireError as exc:
        typer.echo(exc.describe(), err=True)
        raise typer.Exit(code=1) from exc


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
