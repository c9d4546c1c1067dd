"""stmt-extract CLI entrypoint."""

from __future__ import annotations

import csv
import json
from collections.abc import Iterable, Sequence
from io import StringIO
from pathlib import Path
from typing import Any

import click

from stmt_cli.shared import paths
from stmt_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from stmt_cli.stmt_merge.batch import BatchProcessResult, ParseError, is_non_boa_pdf_error, process_batch
from stmt_cli.stmt_merge.scanner import scan_directory_for_pdfs

from .assembler import parse_document
from .parsers.pdf_loader import load_pdf_document_with_engine
from .types import ExtractedDocument, ParsedStatement

OUTPUT_FORMATS = ("json", "csv")

CSV_HEADER = (
    "date",
    "description",
    "merchant",
    "amount",
    "direction",
    "category",
    "subcategory",
    "confidence",
    "account_type",
    "account_number",
    "period_start",
    "period_end",
)


class ExtractDefaultGroup(click.Group):
    """Click group that falls back to a default command when none is provided."""

    def __init__(self, *args, default_command: str | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._default_command = default_command

    def resolve_command(self, ctx: click.Context, args: list[str]):
        if self._default_command is None:
            return super().resolve_command(ctx, args)

        if not args:
            return super().resolve_command(ctx, [self._default_command])

        cmd = super().get_command(ctx, args[0])
        if cmd is not None:
            return super().resolve_command(ctx, args)

        return super().resolve_command(ctx, [self._default_command] + args)


def load_pdf_document(pdf_file: str | Path, *, engine: str) -> ExtractedDocument:
    """Thin proxy around the engine-aware loader; tests monkeypatch this name."""

    return load_pdf_document_with_engine(pdf_file, engine=engine)


@click.group(
    help="Extract and reconcile statements from bank statement PDFs.",
    invoke_without_command=True,
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
    cls=ExtractDefaultGroup,
    default_command="extract",
)
@common_cli_options
@handle_cli_errors
def main(cli_ctx: CLIContext) -> None:
    return


def _mark_dry_run(ctx: click.Context, value: bool) -> None:
    if value and isinstance(ctx.obj, CLIContext):
        ctx.obj.dry_run = True


def output_options(func):
    """Options shared by commands that write statement output."""

    func = click.option(
        "--dry-run",
        "_dry_run_flag",
        is_flag=True,
        expose_value=False,
        help="Print a summary without writing output.",
        callback=lambda ctx, param, value: _mark_dry_run(ctx, value),
    )(func)
    func = click.option("--strict", is_flag=True, help="Add STRICT warnings for unverified fields.")(func)
    func = click.option(
        "--format",
        "output_format",
        type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
        default="json",
        show_default=True,
        help="Output format.",
    )(func)
    func = click.option("--stdout", is_flag=True, help="Write output to stdout.")(func)
    func = click.option(
        "--output", "output_path", type=click.Path(path_type=str), help="Write output to file."
    )(func)
    return func


@main.command("extract", hidden=True)
@click.argument("pdf_file", type=click.Path(path_type=str), required=True)
@output_options
@handle_cli_errors
@pass_cli_context
def extract_command(
    cli_ctx: CLIContext,
    pdf_file: str,
    output_path: str | None,
    stdout: bool,
    output_format: str,
    strict: bool,
) -> None:
    """Extract every statement found in one PDF."""

    engine = cli_ctx.config.extraction.engine
    cli_ctx.logger.debug(f"Using PDF engine: {engine}")

    document = load_pdf_document(pdf_file, engine=engine)
    statements = parse_document(
        document,
        strict=strict or cli_ctx.config.extraction.strict,
        resolvers=cli_ctx.config.resolvers,
        boundaries=cli_ctx.config.boundaries,
    )
    for statement in statements:
        cli_ctx.logger.info(
            f"Statement {statement.account.account_number_masked} "
            f"{statement.account.period_start or '?'} to {statement.account.period_end or '?'} | "
            f"Transactions: {len(statement.transactions)}"
        )
        for warning in statement.metadata.warnings:
            cli_ctx.logger.warning(f"  {warning}")

    if cli_ctx.dry_run:
        _emit_dry_run_summary(cli_ctx, statements)
        return

    payload: Any = [statement.as_dict() for statement in statements]
    destination = _write_output(
        cli_ctx,
        source=pdf_file,
        statements=statements,
        json_payload=payload,
        output_path=output_path,
        stdout=stdout,
        output_format=output_format,
    )
    cli_ctx.logger.success(f"Extraction complete. Output {destination}.")


@main.command("batch")
@click.argument("directory", type=click.Path(path_type=str), required=True)
@output_options
@handle_cli_errors
@pass_cli_context
def batch_command(
    cli_ctx: CLIContext,
    directory: str,
    output_path: str | None,
    stdout: bool,
    output_format: str,
    strict: bool,
) -> None:
    """Extract, merge and deduplicate every statement PDF in DIRECTORY."""

    scan = scan_directory_for_pdfs(directory)
    for skipped in scan.skipped:
        cli_ctx.logger.debug(f"Skipping {skipped.file_name}: {skipped.reason}")
    if not scan.files:
        raise click.ClickException(f"No PDF files found in {scan.directory_path}")
    cli_ctx.logger.info(f"Found {len(scan.files)} PDF file(s) in {scan.directory_path}")

    engine = cli_ctx.config.extraction.engine

    def _progress(current: int, total: int, filename: str) -> None:
        cli_ctx.logger.debug(f"[{current}/{total}] Processing {filename}")

    def _error(error: ParseError) -> None:
        cli_ctx.logger.error(f"Failed to parse {error.filename}: {error.error}")

    result = process_batch(
        scan.files,
        loader=lambda path: load_pdf_document(path, engine=engine),
        strict=strict or cli_ctx.config.extraction.strict,
        resolvers=cli_ctx.config.resolvers,
        boundaries=cli_ctx.config.boundaries,
        merge=cli_ctx.config.merge,
        on_progress=_progress,
        on_error=_error,
    )
    _report_batch(cli_ctx, result)
    if not result.statements:
        raise click.ClickException("No statements could be parsed from any PDF.")

    if cli_ctx.dry_run:
        _emit_dry_run_summary(cli_ctx, result.statements)
        return

    destination = _write_output(
        cli_ctx,
        source=scan.directory_path,
        statements=result.statements,
        json_payload=result.as_dict(),
        output_path=output_path,
        stdout=stdout,
        output_format=output_format,
    )
    cli_ctx.logger.success(f"Batch complete. Output {destination}.")


def _report_batch(cli_ctx: CLIContext, result: BatchProcessResult) -> None:
    summary = result.summary
    cli_ctx.logger.info(
        f"PDFs: {summary.pdfs_succeeded} succeeded, {summary.pdfs_failed} failed "
        f"(of {summary.total_pdfs_found})"
    )
    cli_ctx.logger.info(
        f"Statements: {summary.statements_before_dedup} parsed, "
        f"{summary.duplicate_statements_removed} duplicate(s) removed, "
        f"{result.total_statements} kept"
    )
    cli_ctx.logger.info(
        f"Transactions: {result.total_transactions} kept, "
        f"{summary.duplicate_transactions_removed} duplicate(s) removed"
    )
    non_boa = [error.filename for error in result.parse_errors if is_non_boa_pdf_error(error)]
    if non_boa:
        cli_ctx.logger.warning(
            "These files do not look like supported bank statements: " + ", ".join(non_boa)
        )


def _emit_dry_run_summary(cli_ctx: CLIContext, statements: Sequence[ParsedStatement]) -> None:
    cli_ctx.logger.info("Dry run summary:")
    cli_ctx.logger.info(f"  Statements: {len(statements)}")
    for statement in statements:
        account = statement.account
        cli_ctx.logger.info(
            f"  {account.account_type} {account.account_number_masked} "
            f"{account.period_start or '?'} to {account.period_end or '?'}: "
            f"{len(statement.transactions)} transactions, "
            f"{len(statement.metadata.warnings)} warnings"
        )


def _write_output(
    cli_ctx: CLIContext,
    *,
    source: str | Path,
    statements: Sequence[ParsedStatement],
    json_payload: Any,
    output_path: str | None,
    stdout: bool,
    output_format: str,
) -> str:
    if output_path and stdout:
        raise click.UsageError("Cannot use both --output and --stdout simultaneously.")
    output_format = output_format.lower()
    if not output_path and not stdout:
        output_path = str(paths.default_output_path(source, output_format))
        cli_ctx.logger.info(
            f"No --output provided; defaulting to {output_path} in the output directory."
        )

    if output_format == "csv":
        text = _render_csv(statements)
    else:
        text = json.dumps(json_payload, indent=2)

    if stdout:
        click.echo(text)
        return "sent to stdout"

    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(text + "\n", encoding="utf-8")
    return f"written to {output_path}"


def _render_csv_rows(statements: Iterable[ParsedStatement]) -> Iterable[list[Any]]:
    for statement in statements:
        account = statement.account
        for txn in statement.transactions:
            yield [
                txn.date,
                txn.description,
                txn.merchant,
                f"{txn.amount:.2f}",
                txn.direction,
                txn.category,
                txn.subcategory,
                f"{txn.confidence:.2f}",
                account.account_type,
                account.account_number_masked,
                account.period_start,
                account.period_end,
            ]


def _render_csv(statements: Iterable[ParsedStatement]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)
    writer.writerows(_render_csv_rows(statements))
    return buffer.getvalue().strip()


if __name__ == "__main__":  # pragma: no cover
    main()
