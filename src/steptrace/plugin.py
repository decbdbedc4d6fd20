"""pytest plugin wiring steps, evidence and result upload into the test lifecycle.

Tests opt in by carrying an Xray key in their title, either through
``@pytest.mark.title("PXX-10: login")`` or the first line of the docstring::

    def test_login(page, step, snap):
        '''PXX-10: login works'''
        step("Open home", lambda: page.goto(URL))
        step("Check title", lambda: snap.after("title", check_title))
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import pytest
from dotenv import load_dotenv

from steptrace.core.context import EXECUTION_ANNOTATION, TestContext
from steptrace.core.models import ScreenshotSource, TestOutcome
from steptrace.core.store import DEFAULT_RESULTS_DIR, ResultStore
from steptrace.harness import Snapper, TestHarness, TraceBuilder
from steptrace.reporting.terminal import upload_summary_lines
from steptrace.upload import ConfigError, UploadOrchestrator, UploadReport, UploadSettings, load_settings

logger = logging.getLogger(__name__)

_BUILDER_KEY = pytest.StashKey[TraceBuilder]()
_SETTINGS_KEY = pytest.StashKey[UploadSettings]()
_REPORT_KEY = pytest.StashKey[Optional[UploadReport]]()
_PHASE_REPORTS_KEY = pytest.StashKey[Dict[str, pytest.TestReport]]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("steptrace", "step evidence and Xray upload")
    group.addoption(
        "--steptrace-results-dir",
        default=None,
        help="Directory for per-test result files (default: .steptrace-results under rootdir).",
    )
    group.addoption("--steptrace-config", default=None, help="YAML upload configuration file.")
    group.addoption(
        "--steptrace-no-upload",
        action="store_true",
        default=False,
        help="Leave results on disk at session end instead of bundling/uploading them.",
    )
    parser.addini("steptrace_output_dir", "Directory for per-test evidence files.", default="test-results")
    parser.addini("steptrace_results_dir", "Directory for per-test result files.", default=DEFAULT_RESULTS_DIR)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "title(text): test title carrying the Xray key, e.g. 'PXX-10: login'.")
    config.addinivalue_line("markers", "xray_execution(key): explicit target test execution for this test.")
    root = config.rootpath
    load_dotenv(root / ".env")
    try:
        settings = load_settings(config.getoption("steptrace_config"), base_dir=root)
    except ConfigError as exc:
        raise pytest.UsageError(str(exc)) from exc
    results_dir = config.getoption("steptrace_results_dir") or config.getini("steptrace_results_dir")
    store = ResultStore(_anchor(Path(results_dir), root))
    output_root = _anchor(Path(config.getini("steptrace_output_dir")), root)
    config.stash[_SETTINGS_KEY] = settings
    config.stash[_BUILDER_KEY] = TraceBuilder(store, output_root)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo) -> Iterator[None]:
    outcome = yield
    report = outcome.get_result()
    item.stash.setdefault(_PHASE_REPORTS_KEY, {})[report.when] = report


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    config = session.config
    if hasattr(config, "workerinput"):
        # xdist workers only write result files; the controller consumes them.
        return
    if _BUILDER_KEY not in config.stash:
        return
    store = config.stash[_BUILDER_KEY].store
    if config.getoption("steptrace_no_upload"):
        logger.info("Leaving test results in %s", store.results_dir)
        return
    orchestrator = UploadOrchestrator(store, config.stash[_SETTINGS_KEY])
    config.stash[_REPORT_KEY] = orchestrator.run()


def pytest_terminal_summary(terminalreporter, exitstatus: int, config: pytest.Config) -> None:
    report = config.stash.get(_REPORT_KEY, None)
    if report is None:
        return
    terminalreporter.section("steptrace")
    for text, color in upload_summary_lines(report):
        markup = {color: True} if color else {}
        terminalreporter.write_line(text, **markup)


@pytest.fixture
def trace_page(request: pytest.FixtureRequest) -> Optional[ScreenshotSource]:
    """Screenshot source for steps; the ``page`` fixture when one is defined."""

    try:
        return request.getfixturevalue("page")
    except pytest.FixtureLookupError:
        return None


@pytest.fixture(autouse=True)
def trace_context(request: pytest.FixtureRequest) -> Iterator[TestContext]:
    builder = request.config.stash[_BUILDER_KEY]
    item = request.node
    context = builder.context_for(
        title=_title(item),
        spec_file=item.path.name,
        test_id=item.nodeid,
        annotations=_annotations(item),
    )
    builder.recorder.start(context)
    yield context
    builder.recorder.finish(context, _outcome(item))


@pytest.fixture
def trace_harness(
    request: pytest.FixtureRequest, trace_context: TestContext, trace_page: Optional[ScreenshotSource]
) -> TestHarness:
    return request.config.stash[_BUILDER_KEY].harness(trace_context, trace_page)


@pytest.fixture
def step(trace_harness: TestHarness):
    return trace_harness.step


@pytest.fixture
def snap(trace_harness: TestHarness) -> Snapper:
    return trace_harness.snap


def _title(item: pytest.Item) -> str:
    marker = item.get_closest_marker("title")
    if marker is not None and marker.args:
        return str(marker.args[0])
    doc = getattr(getattr(item, "obj", None), "__doc__", None)
    if doc and doc.strip():
        return doc.strip().splitlines()[0].strip()
    return item.name


def _annotations(item: pytest.Item) -> List[Tuple[str, str]]:
    # iter_markers yields the closest marker first; the context keeps the last one.
    markers = [marker for marker in item.iter_markers(EXECUTION_ANNOTATION) if marker.args]
    return [(EXECUTION_ANNOTATION, str(marker.args[0])) for marker in reversed(markers)]


def _outcome(item: pytest.Item) -> TestOutcome:
    reports = item.stash.get(_PHASE_REPORTS_KEY, {})
    for phase in ("setup", "call"):
        report = reports.get(phase)
        if report is not None and report.failed:
            return TestOutcome(failed=True, message=_failure_message(report))
    return TestOutcome(failed=False)


def _failure_message(report: pytest.TestReport) -> str:
    crash = getattr(report.longrepr, "reprcrash", None)
    if crash is not None and crash.message:
        return crash.message
    return str(report.longrepr) if report.longrepr else "Test failed"


def _anchor(path: Path, base: Path) -> Path:
    return path if path.is_absolute() else base / path
