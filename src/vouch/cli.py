from __future__ import annotations

from pathlib import Path

import typer

from vouch.config import ReporterType, VouchConfig

app = typer.Typer(name="vouch", help="Run expectation-based test suites")


def _resolve_config(config: str | None, **overrides) -> VouchConfig:
    from vouch.config import find_config, load_config

    if config is not None:
        config_path = Path(config)
        if not config_path.exists():
            typer.echo(f"Error: config file not found: {config}", err=True)
            raise typer.Exit(1)
    else:
        config_path = find_config(Path.cwd())

    try:
        base = load_config(config_path) if config_path is not None else VouchConfig()
        return VouchConfig(
            **{
                **base.model_dump(),
                **{k: v for k, v in overrides.items() if v is not None},
            }
        )
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _listeners(run_config: VouchConfig) -> list:
    from vouch.reporting import JUnitReporter, get_reporter

    listeners = [get_reporter(run_config.reporter)]
    if run_config.junit_xml:
        listeners.append(JUnitReporter(Path(run_config.junit_xml)))
    return listeners


def _logger(run_config: VouchConfig, verbose: bool):
    from vouch.verbose import setup_logger

    log_file = Path(run_config.log_file) if run_config.log_file else None
    return setup_logger(log_file, verbose=verbose, logger_name="vouch")


@app.command()
def run(
    path: str = typer.Argument(help="Test file or directory of test files"),
    reporter: ReporterType | None = typer.Option(
        None, "--reporter", help="Output style: minimal or verbose"
    ),
    filter: str | None = typer.Option(
        None, "--filter", "-f", help="Run only cases whose context, description or full name contains this"
    ),
    regex: bool = typer.Option(
        False, "--regex", help="Treat --filter as a regular expression"
    ),
    parallel: int | None = typer.Option(
        None, "--parallel", "-p", min=1, max=100, help="Number of cases to run in parallel"
    ),
    continue_on_failure: bool = typer.Option(
        False,
        "--continue-on-failure",
        help="Keep running a case body after a failed expectation",
    ),
    junit_xml: str | None = typer.Option(None, "--junit-xml", help="Also write a JUnit XML report"),
    code: str | None = typer.Option(None, "--code", help="Directory of the code under test"),
    config: str | None = typer.Option(None, "--config", help="Path to vouch.yaml"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output to stderr"
    ),
    log_file: str | None = typer.Option(None, "--log-file", help="Write debug log to this file"),
):
    """Run the tests under PATH once."""
    from vouch.runner import Runner

    test_path = Path(path)
    if not test_path.exists():
        typer.echo(f"Error: test path not found: {path}", err=True)
        raise typer.Exit(1)

    run_config = _resolve_config(
        config,
        reporter=reporter,
        filter=filter,
        filter_regex=regex or None,
        parallel=parallel,
        continue_on_failure=continue_on_failure or None,
        junit_xml=junit_xml,
        log_file=log_file,
    )
    logger = _logger(run_config, verbose)

    runner = Runner(
        config=run_config,
        listeners=_listeners(run_config),
        code_path=Path(code) if code else None,
        logger=logger,
    )
    report = runner.execute(test_path)

    if report.interrupted:
        typer.echo("Run interrupted.")
    raise typer.Exit(report.exit_code)


@app.command()
def watch(
    code_path: str = typer.Argument(help="Directory of the code under test"),
    test_path: str = typer.Argument(help="Test file or directory of test files"),
    reporter: ReporterType | None = typer.Option(
        None, "--reporter", help="Output style: minimal or verbose"
    ),
    poll_interval: float | None = typer.Option(
        None, "--poll-interval", min=0.01, help="Seconds between change checks"
    ),
    filter: str | None = typer.Option(None, "--filter", "-f", help="Run only matching cases"),
    parallel: int | None = typer.Option(
        None, "--parallel", "-p", min=1, max=100, help="Number of cases to run in parallel"
    ),
    config: str | None = typer.Option(None, "--config", help="Path to vouch.yaml"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output to stderr"
    ),
):
    """Run the tests, then rerun them whenever CODE_PATH or TEST_PATH changes."""
    from vouch.errors import WatchIOError
    from vouch.runner import Runner
    from vouch.watch import Watcher

    for p in (code_path, test_path):
        if not Path(p).exists():
            typer.echo(f"Error: path not found: {p}", err=True)
            raise typer.Exit(1)

    run_config = _resolve_config(
        config,
        reporter=reporter,
        poll_interval=poll_interval,
        filter=filter,
        parallel=parallel,
    )
    logger = _logger(run_config, verbose)
    runner = Runner(
        config=run_config,
        listeners=_listeners(run_config),
        code_path=Path(code_path),
        logger=logger,
    )

    def _rerun() -> None:
        try:
            runner.execute(Path(test_path))
        except Exception as e:
            typer.echo(f"Error: rerun failed: {e}", err=True)
        typer.echo(f"Watching {code_path} and {test_path} for changes (Ctrl+C to stop)...")

    watcher = Watcher(
        Path(code_path),
        Path(test_path),
        _rerun,
        poll_interval=run_config.poll_interval,
        logger=logger,
    )
    try:
        watcher.run()
    except KeyboardInterrupt:
        watcher.cancel()
    except WatchIOError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo("Stopped watching.")


@app.command()
def init(
    dir: str = typer.Option(".", "--dir", help="Directory to initialize the test project in"),
):
    """Create an example vouch.yaml and test file."""
    project_dir = Path(dir)
    project_dir.mkdir(parents=True, exist_ok=True)

    config_file = project_dir / "vouch.yaml"
    if config_file.exists():
        typer.echo(f"vouch.yaml already exists in {dir}, skipping.")
        return

    config_file.write_text("""\
reporter: minimal
parallel: 1
test_pattern: "test"
tolerance: 1.5e-8
poll_interval: 1.0
""")

    tests_dir = project_dir / "tests"
    tests_dir.mkdir(parents=True, exist_ok=True)
    example = tests_dir / "test_example.py"
    if not example.exists():
        example.write_text('''\
from vouch import context, expect_equal, expect_error, expect_output, test_that

context("arithmetic")


@test_that("floating point addition is close enough")
def _():
    expect_equal(0.1 + 0.2, 0.3)


@test_that("division by zero raises")
def _():
    expect_error(lambda: 1 / 0, "division by zero")


@test_that("greeting is printed")
def _():
    expect_output(lambda: print("hello"), "hello")
''')

    typer.echo(f"Initialized test project in {dir}:")
    typer.echo("  vouch.yaml             - run configuration")
    typer.echo("  tests/test_example.py  - example test file")
