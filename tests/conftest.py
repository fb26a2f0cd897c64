# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a sample XML report, fast-polling settings, a scripted in-memory
scan client, a fake HTTP server for httpx.MockTransport and a small source
workspace. No network access: all remote I/O is faked.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import httpx
import pytest

from cxscan.client.base_client import BaseScanClient
from cxscan.client.models import Preset, Project, ProjectNameCheck, Session, SourceEncoding
from cxscan.config.settings import Settings
from cxscan.core.errors import AuthError, ReportUnavailable
from cxscan.core.models import RunHandle, ScanRequest, StreamedPayload

# === Sample data ===

SAMPLE_REPORT_XML = b"""<?xml version="1.0" encoding="utf-8"?>
<CxXMLResults ProjectName="demo" ScanId="1001" ScanStart="Monday, May 4, 2015"
              DeepLink="http://cx.local/CxWebClient/ViewerMain.aspx?scanid=1001"
              FilesScanned="12" LinesOfCodeScanned="3400">
  <Query name="SQL_Injection" group="Java_High_Risk" Severity="High">
    <Result FileName="src/Dao.java" Line="42" Column="7" NodeId="1" FalsePositive="False"/>
    <Result FileName="src/Dao.java" Line="88" Column="3" NodeId="2" FalsePositive="False"/>
    <Result FileName="src/Old.java" Line="5" Column="1" NodeId="3" FalsePositive="True"/>
  </Query>
  <Query name="XSS_Reflected" group="Java_High_Risk" Severity="High">
    <Result FileName="src/View.java" Line="10" NodeId="4" FalsePositive="False"/>
  </Query>
  <Query name="Weak_Hash" group="Java_Medium_Threat" Severity="Medium">
    <Result FileName="src/Crypto.java" Line="3" NodeId="5" FalsePositive="False"/>
  </Query>
  <Query name="Magic_Numbers" group="Java_Low_Visibility" Severity="Low">
    <Result FileName="src/Util.java" Line="7" NodeId="6" FalsePositive="False"/>
    <Result FileName="src/Util.java" Line="9" NodeId="7" FalsePositive="False"/>
  </Query>
</CxXMLResults>
"""

EMPTY_REPORT_XML = b'<?xml version="1.0"?><CxXMLResults ProjectName="demo" ScanId="1001"/>'

FAKE_PDF = b"%PDF-1.4 fake report"


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_report_xml() -> bytes:
    """Report with 3 high, 1 medium, 2 low (one false positive not counted)."""
    return SAMPLE_REPORT_XML


@pytest.fixture
def settings() -> Settings:
    """Settings with default credentials and near-zero poll intervals."""
    return Settings(
        _env_file=None,
        server_url="http://cx.local",
        server_username="admin",
        server_password="secret",
        poll_interval_s=0.01,
        scan_timeout_s=5.0,
        report_poll_interval_s=0.01,
        report_timeout_s=5.0,
        poll_max_retries=0,
    )


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """12 source files plus test/, build/ and out/ folders at several depths."""
    root = tmp_path / "workspace"
    files = {
        "pom.xml": "<project/>",
        "src/main/java/App.java": "class App {}",
        "src/main/java/Dao.java": "class Dao {}",
        "src/main/java/util/Util.java": "class Util {}",
        "src/main/resources/app.properties": "a=1",
        "src/main/webapp/index.jsp": "<html/>",
        "src/main/webapp/js/app.js": "var a = 1;",
        "src/test/java/AppTest.java": "class AppTest {}",
        "test/Smoke.java": "class Smoke {}",
        "build/classes/App.class": "\xca\xfe",
        "out/report.txt": "out",
        "modules/core/out/gen.java": "class Gen {}",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


# === FIXTURES: Fake scan client ===


class FakeScanClient(BaseScanClient):
    """Scripted in-memory client recording every call."""

    def __init__(
        self,
        server_url: str = "http://cx.local",
        *,
        scan_id: int = 1001,
        report_xml: bytes = SAMPLE_REPORT_XML,
        login_error: Exception | None = None,
        submit_error: Exception | None = None,
        track_error: Exception | None = None,
        pdf_error: Exception | None = None,
    ) -> None:
        self.server_url = server_url
        self.scan_id = scan_id
        self.report_xml = report_xml
        self.login_error = login_error
        self.submit_error = submit_error
        self.track_error = track_error
        self.pdf_error = pdf_error
        self.calls: list[str] = []
        self.logins: list[tuple[str, str]] = []
        self.requests: list[ScanRequest] = []
        self.payload_existed: list[bool] = []
        self.session: Session | None = None
        self.closed = False

    async def login(self, username: str, password: str) -> Session:
        self.calls.append("login")
        self.logins.append((username, password))
        if self.login_error is not None:
            raise self.login_error
        from datetime import datetime, timezone

        self.session = Session(
            session_id="s1", username=username, created_at=datetime.now(timezone.utc),
        )
        return self.session

    def is_logged_in(self) -> bool:
        return self.session is not None

    async def ping(self) -> None:
        self.calls.append("ping")

    async def submit(self, request: ScanRequest) -> RunHandle:
        self.calls.append("submit")
        self.requests.append(request)
        if isinstance(request.payload, StreamedPayload):
            self.payload_existed.append(request.payload.path.exists())
        if self.submit_error is not None:
            raise self.submit_error
        return RunHandle(run_id="run-1")

    async def track_until_done(self, handle, cancel=None) -> int:
        self.calls.append("track")
        if self.track_error is not None:
            raise self.track_error
        return self.scan_id

    async def fetch_report(self, scan_id: int, fmt) -> bytes:
        self.calls.append(f"fetch_{fmt.lower()}")
        if fmt == "PDF":
            if self.pdf_error is not None:
                raise self.pdf_error
            return FAKE_PDF
        return self.report_xml

    async def list_projects(self) -> list[Project]:
        return [Project(id=1, name="demo"), Project(id=2, name="other")]

    async def list_presets(self) -> list[Preset]:
        return [Preset(id=36, name="Checkmarx Default")]

    async def list_source_encodings(self) -> list[SourceEncoding]:
        return [SourceEncoding(id=1, name="Default Configuration")]

    async def validate_project_name(self, name: str) -> ProjectNameCheck:
        return ProjectNameCheck(valid=True)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client() -> FakeScanClient:
    return FakeScanClient()


@pytest.fixture
def client_factory(fake_client: FakeScanClient):
    """Factory returning the shared fake_client and recording server URLs."""
    urls: list[str] = []

    def factory(server_url: str) -> FakeScanClient:
        urls.append(server_url)
        fake_client.server_url = server_url
        return fake_client

    factory.urls = urls  # type: ignore[attr-defined]
    return factory


# === FIXTURES: Fake HTTP server ===


def _ok(**fields: Any) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "errorMessage": "", **fields})


def _fail(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"success": False, "errorMessage": message})


_ARGS_PART = re.compile(rb'name="args"\r\n\r\n(.*?)\r\n--', re.S)
_FILE_PART = re.compile(rb'name="file"; filename="[^"]*"\r\nContent-Type: [^\r]*\r\n\r\n(.*)\r\n--', re.S)


class FakeCxServer:
    """Minimal scan server behind httpx.MockTransport.

    Run statuses are served in order; the last one repeats. The session id
    changes on every login, so only the newest session stays valid.
    """

    def __init__(
        self,
        report_xml: bytes = SAMPLE_REPORT_XML,
        statuses: list[str] | None = None,
        password: str = "secret",
        scan_id: int = 1001,
    ) -> None:
        self.report_xml = report_xml
        self.statuses = list(statuses or ["Queued", "Working", "Finished"])
        self.password = password
        self.scan_id = scan_id
        self.login_count = 0
        self.session_id: str | None = None
        self.requests: list[httpx.Request] = []
        self.submitted_args: list[dict[str, Any]] = []
        self.uploaded: list[bytes] = []
        self.report_types: dict[int, str] = {}
        self.fail_pdf = False
        self.status_failures = 0
        self.projects = [{"projectId": 1, "projectName": "demo"}]
        self.presets = [{"id": 36, "presetName": "Checkmarx Default"}]
        self.configurations = [{"id": 1, "configSetName": "Default Configuration"}]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def route_count(self, route: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith("/cxwebapi/" + route))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = request.url.path.split("/cxwebapi/", 1)[-1]

        if route == "ping":
            return _ok()
        if route == "auth/login":
            return self._login(json.loads(request.content))

        if self.session_id is None or request.headers.get("CxSessionId") != self.session_id:
            return _fail(401, "ReConnect: session is not valid")

        if route == "scans/streaming" and request.method == "POST":
            return self._submit_streaming(request.content)
        if route.startswith("scans/runs/"):
            return self._run_status()
        if route == "reports" and request.method == "POST":
            body = json.loads(request.content)
            report_id = len(self.report_types) + 1
            self.report_types[report_id] = body["type"]
            return _ok(reportId=report_id)
        if route.startswith("reports/") and route.endswith("/status"):
            return _ok(isReady=True, isFailed=False)
        if route.startswith("reports/"):
            return self._download(int(route.split("/")[1]))
        if route == "projects":
            return _ok(projects=self.projects)
        if route == "presets":
            return _ok(presets=self.presets)
        if route == "configurations":
            return _ok(configurations=self.configurations)
        if route == "projects/validate":
            name = json.loads(request.content)["projectName"]
            if "/" in name:
                return _ok(success=False, errorMessage="Illegal project name")
            return _ok()
        return _fail(404, f"No route {route}")

    def _login(self, body: dict[str, Any]) -> httpx.Response:
        if body.get("password") != self.password:
            return _fail(401, "Invalid username or password")
        self.login_count += 1
        self.session_id = f"session-{self.login_count}"
        return _ok(sessionId=self.session_id)

    def _submit_streaming(self, content: bytes) -> httpx.Response:
        args = _ARGS_PART.search(content)
        upload = _FILE_PART.search(content)
        if args is None or upload is None:
            return _fail(400, "Malformed multipart body")
        self.submitted_args.append(json.loads(args.group(1)))
        self.uploaded.append(upload.group(1))
        return _ok(runId="run-1")

    def _run_status(self) -> httpx.Response:
        if self.status_failures:
            self.status_failures -= 1
            return httpx.Response(503)
        stage = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        fields: dict[str, Any] = {
            "currentStatus": stage,
            "totalPercent": 100 if stage == "Finished" else 40,
            "stageMessage": "Scan failed on engine" if stage == "Failed" else "",
        }
        if stage == "Finished":
            fields["scanId"] = self.scan_id
        return _ok(**fields)

    def _download(self, report_id: int) -> httpx.Response:
        fmt = self.report_types.get(report_id)
        if fmt == "PDF":
            if self.fail_pdf:
                return _fail(404, "PDF report not found")
            return httpx.Response(200, content=FAKE_PDF)
        if fmt == "XML":
            return httpx.Response(200, content=self.report_xml)
        return _fail(404, "Unknown report")


@pytest.fixture
def fake_server() -> FakeCxServer:
    return FakeCxServer()
