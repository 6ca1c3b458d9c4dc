import copy
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from shopreg import order_service, user_service
from shopreg.config import DEFAULT_CONFIG
from shopreg.errors import OracleUnavailable
from shopreg.schemas import Order, User
from shopreg.store import RecordStore


_CASE_RESULTS: list[dict[str, str]] = []


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "case(point, keyword='N/A'): annotate testcase with test point and record keyword",
    )


class StubOracle:
    """Existence oracle answering from a fixed set of user ids and recording calls."""

    def __init__(self, known: set[int] | None = None, unavailable: bool = False) -> None:
        self.known = set(known or ())
        self.unavailable = unavailable
        self.calls: list[int] = []

    def exists(self, user_id: int) -> bool:
        self.calls.append(user_id)
        if self.unavailable:
            raise OracleUnavailable()
        return user_id in self.known


@pytest.fixture
def service_config() -> dict:
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["logging"]["user_log"] = ""
    config["logging"]["order_log"] = ""
    return config


@pytest.fixture
def user_store() -> RecordStore[User]:
    return RecordStore(User)


@pytest.fixture
def order_store() -> RecordStore[Order]:
    return RecordStore(Order)


@pytest.fixture
def user_client(user_store: RecordStore[User], service_config: dict):
    with TestClient(user_service.create_app(user_store=user_store, config=service_config)) as client:
        yield client


@pytest.fixture
def oracle() -> StubOracle:
    return StubOracle(known={1, 2})


@pytest.fixture
def order_client(order_store: RecordStore[Order], oracle: StubOracle, service_config: dict):
    app = order_service.create_app(order_store=order_store, oracle=oracle, config=service_config)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def build_order_client(order_store: RecordStore[Order], service_config: dict):
    """Order client factory for tests needing their own oracle or fail-open policy."""

    def _build(known: set[int] | None = None, unavailable: bool = False, fail_open: bool = False):
        stub = StubOracle(known=known, unavailable=unavailable)
        service_config["oracle"]["fail_open"] = fail_open
        app = order_service.create_app(order_store=order_store, oracle=stub, config=service_config)
        return TestClient(app), stub

    return _build


@pytest.fixture
def record_keyword(request: pytest.FixtureRequest):
    def _record(keyword) -> None:
        request.node.user_properties.append(("record_keyword", str(keyword)))

    return _record


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo):
    outcome = yield
    report = outcome.get_result()

    if report.when != "call":
        return

    marker = item.get_closest_marker("case")
    if marker is None:
        return

    point = str(marker.kwargs.get("point", "Unlabeled test point"))
    keyword = str(marker.kwargs.get("keyword", "N/A"))

    for key, value in item.user_properties:
        if key == "record_keyword":
            keyword = str(value)

    _CASE_RESULTS.append(
        {
            "case": item.name,
            "status": report.outcome,
            "point": point,
            "keyword": keyword,
        }
    )


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    if not _CASE_RESULTS:
        return

    report_dir = Path("tests/reports")
    report_dir.mkdir(parents=True, exist_ok=True)
    report_file = report_dir / "test-execution-report.md"

    passed = sum(1 for row in _CASE_RESULTS if row["status"] == "passed")
    failed = sum(1 for row in _CASE_RESULTS if row["status"] == "failed")
    skipped = sum(1 for row in _CASE_RESULTS if row["status"] == "skipped")

    lines = [
        "# Registry Test Execution Report",
        "",
        f"- Total test cases: {len(_CASE_RESULTS)}",
        f"- Passed: {passed}",
        f"- Failed: {failed}",
        f"- Skipped: {skipped}",
        "",
        "## Case Details",
        "| No. | Test Case | Result | Test Point | Record Keyword |",
        "|---:|---|---|---|---|",
    ]

    for index, row in enumerate(_CASE_RESULTS, start=1):
        lines.append(f"| {index} | {row['case']} | {row['status']} | {row['point']} | {row['keyword']} |")

    report_file.write_text("\n".join(lines), encoding="utf-8")
