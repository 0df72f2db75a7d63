"""CLI entry point for the student records service."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from student_records.client import DEFAULT_BASE_URL, StudentClient, StudentClientError
from student_records.config import ConfigError, load_config

TABLE_COLUMNS = (
    ("id", "ID", 5),
    ("studentCode", "CODE", 12),
    ("firstName", "FIRST NAME", 16),
    ("lastName", "LAST NAME", 16),
    ("email", "EMAIL", 30),
    ("phone", "PHONE", 15),
)


def format_table(students: list[dict[str, Any]]) -> str:
    """Render students as a fixed-width text table."""
    header = "  ".join(title.ljust(width) for _, title, width in TABLE_COLUMNS)
    lines = [header, "-" * len(header)]
    for student in students:
        cells = []
        for key, _, width in TABLE_COLUMNS:
            value = student.get(key)
            text = "" if value is None else str(value)
            if len(text) > width:
                text = text[: width - 1] + "…"
            cells.append(text.ljust(width))
        lines.append("  ".join(cells).rstrip())
    return "\n".join(lines)


def _load(config_path: Path | None) -> Any:
    try:
        return load_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(package_name="student-records")
def main() -> None:
    """Student records - REST service and client."""
    pass


@main.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to student_records.yaml (auto-detected if not specified)",
)
@click.option("--host", default=None, help="Bind address (default: from config)")
@click.option("--port", type=int, default=None, help="Port (default: from config)")
def serve(config_path: Path | None, host: str | None, port: int | None) -> None:
    """Run the REST API server."""
    import uvicorn  # noqa: PLC0415

    from student_records.api.app import create_app  # noqa: PLC0415
    from student_records.logging import setup_logging  # noqa: PLC0415

    config = _load(config_path)
    setup_logging(config)

    app = create_app(config)
    uvicorn.run(
        app,
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower(),
        # keep the handlers setup_logging attached to uvicorn's loggers
        log_config=None,
        # RequestLoggingMiddleware already logs each request
        access_log=False,
    )


@main.command("init-db")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to student_records.yaml (auto-detected if not specified)",
)
def init_db(config_path: Path | None) -> None:
    """Create the database tables."""
    from student_records.store.database import Database  # noqa: PLC0415

    config = _load(config_path)
    database = Database(config.database_url)
    try:
        database.create_tables()
    finally:
        database.close()
    click.echo(f"Database initialized at {config.database_url}")


@main.group()
@click.option(
    "--url",
    envvar="STUDENT_RECORDS_API_URL",
    default=DEFAULT_BASE_URL,
    show_default=True,
    help="API root URL",
)
@click.option("--timeout", type=float, default=10.0, show_default=True, help="Request timeout")
@click.pass_context
def students(ctx: click.Context, url: str, timeout: float) -> None:
    """Manage students through the REST API."""
    ctx.obj = ctx.with_resource(StudentClient(base_url=url, timeout=timeout))


def _fail(error: StudentClientError) -> None:
    click.echo(f"Error: {error}", err=True)
    for detail in error.errors:
        click.echo(f"  - {detail.get('field')}: {detail.get('message')}", err=True)
    sys.exit(1)


@students.command("list")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=10, show_default=True)
@click.option("--search", default=None, help="Match name, code or email")
@click.option("--sort-by", default="firstName", show_default=True)
@click.option("--desc", is_flag=True, help="Sort descending")
@click.pass_obj
def list_students(
    client: StudentClient,
    page: int,
    limit: int,
    search: str | None,
    sort_by: str,
    desc: bool,
) -> None:
    """List students one page at a time."""
    try:
        result = client.paginated(
            page=page,
            limit=limit,
            search=search,
            sort_by=sort_by,
            sort_order="desc" if desc else "asc",
        )
    except StudentClientError as e:
        _fail(e)
        return

    meta = result["pagination"]
    click.echo(format_table(result["data"]))
    click.echo(f"\nPage {meta['page']} of {max(meta['totalPages'], 1)} ({meta['total']} students)")


@students.command("show")
@click.argument("key")
@click.option("--code", "by_code", is_flag=True, help="Treat KEY as a student code")
@click.pass_obj
def show_student(client: StudentClient, key: str, by_code: bool) -> None:
    """Show one student by ID (or by code with --code)."""
    try:
        if by_code:
            student = client.get_by_code(key)
        elif key.isdigit():
            student = client.get(int(key))
        else:
            raise click.BadParameter("ID must be a number (use --code for student codes)")
    except StudentClientError as e:
        _fail(e)
        return
    click.echo(format_table([student]))


@students.command("add")
@click.option("--code", "student_code", required=True, help="Unique student code")
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
@click.option("--email", required=True)
@click.option("--phone", default=None)
@click.pass_obj
def add_student(
    client: StudentClient,
    student_code: str,
    first_name: str,
    last_name: str,
    email: str,
    phone: str | None,
) -> None:
    """Create a student."""
    data = {
        "studentCode": student_code,
        "firstName": first_name,
        "lastName": last_name,
        "email": email,
    }
    if phone is not None:
        data["phone"] = phone
    try:
        student = client.create(data)
    except StudentClientError as e:
        _fail(e)
        return
    click.echo(f"Created student {student['id']} ({student['studentCode']})")


@students.command("update")
@click.argument("student_id", type=int)
@click.option("--code", "student_code", default=None)
@click.option("--first-name", default=None)
@click.option("--last-name", default=None)
@click.option("--email", default=None)
@click.option("--phone", default=None)
@click.pass_obj
def update_student(
    client: StudentClient,
    student_id: int,
    student_code: str | None,
    first_name: str | None,
    last_name: str | None,
    email: str | None,
    phone: str | None,
) -> None:
    """Update the given fields of a student."""
    changes = {
        "studentCode": student_code,
        "firstName": first_name,
        "lastName": last_name,
        "email": email,
        "phone": phone,
    }
    data = {key: value for key, value in changes.items() if value is not None}
    if not data:
        click.echo("Nothing to update", err=True)
        sys.exit(1)
    try:
        student = client.update(student_id, data)
    except StudentClientError as e:
        _fail(e)
        return
    click.echo(f"Updated student {student['id']}")


@students.command("remove")
@click.argument("student_id", type=int)
@click.confirmation_option(prompt="Delete this student?")
@click.pass_obj
def remove_student(client: StudentClient, student_id: int) -> None:
    """Delete a student."""
    try:
        student = client.delete(student_id)
    except StudentClientError as e:
        _fail(e)
        return
    click.echo(f"Deleted student {student['id']} ({student['studentCode']})")


@students.command("search")
@click.argument("term")
@click.pass_obj
def search_students(client: StudentClient, term: str) -> None:
    """Search students by name, code or email."""
    try:
        results = client.search(term)
    except StudentClientError as e:
        _fail(e)
        return
    click.echo(format_table(results))


@students.command("import")
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def import_students(client: StudentClient, json_file: Path) -> None:
    """Create students from a JSON file holding an array of records."""
    try:
        rows = json.loads(json_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        click.echo(f"Error: cannot read {json_file}: {e}", err=True)
        sys.exit(1)
    try:
        created = client.bulk_create(rows)
    except StudentClientError as e:
        _fail(e)
        return
    click.echo(f"Imported {created} students")


if __name__ == "__main__":
    main()
