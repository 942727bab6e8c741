"""
Fake Playwright objects for the scraper tests.

FakePortal rebuilds its DOM on every query, like the real portal, and bumps a
generation counter on every navigation.  Element handles remember the
generation they were created in and raise when touched afterwards, so any
test that completes has proven no stale handle was reused.
"""

from contextlib import contextmanager

import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeout

from intern_scraper.auth import LOGIN_FORM
from intern_scraper.downloads import FILE_LINKS
from intern_scraper.extractor import CELL, DETAIL_FRAME, EMAIL_CELL, PHONE_CELL
from intern_scraper.navigator import MENU_ENTRY, MENU_FRAME_NAME
from intern_scraper.scraper import DATA_ROW, INTERNSHIP_TABLE, RETURN_LINK, STUDENT_LINK, STUDENT_TABLE
from intern_scraper.utils import load_config


class StaleHandle(AssertionError):
    pass


class FakeElement:
    def __init__(self, text="", visible=True, children=None, on_click=None, frame=None, portal=None):
        self.text = text
        self.visible = visible
        self.children = children or {}
        self.on_click = on_click
        self.frame = frame
        self.portal = portal
        self.generation = portal.generation if portal else 0
        self.attributes = {}
        self.clicks = 0

    def _check(self):
        if self.portal is not None and self.portal.generation != self.generation:
            raise StaleHandle(f"handle for {self.text!r} used after navigation")

    def query_selector_all(self, selector):
        self._check()
        return list(self.children.get(selector, []))

    def query_selector(self, selector):
        found = self.query_selector_all(selector)
        return found[0] if found else None

    def inner_text(self):
        self._check()
        return self.text

    def bounding_box(self):
        self._check()
        if not self.visible:
            return None
        return {"x": 0, "y": 0, "width": 100, "height": 20}

    def click(self, selector=None):
        self._check()
        self.clicks += 1
        if selector is not None:
            target = self.query_selector(selector)
            return target.click()
        if self.on_click:
            self.on_click(self)

    def content_frame(self):
        self._check()
        return self.frame

    def evaluate(self, script, arg=None):
        self._check()
        self.attributes["download"] = arg

    def wait_for_load_state(self, state="load", timeout=None):
        self._check()


class FakeDownload:
    def __init__(self, suggested_filename):
        self.suggested_filename = suggested_filename
        self.saved_to = None

    def save_as(self, path):
        with open(path, "wb") as fh:
            fh.write(b"%PDF-1.4 fake")
        self.saved_to = path


class _EventInfo:
    value = None


class Student:
    def __init__(self, name, department="IN", date="2026-09-01", email=None, phone="+41 21 000 00 00",
                 files=(), has_frame=True):
        self.name = name
        self.department = department
        self.date = date
        self.email = email if email is not None else f"{name.lower()}@epfl.ch"
        self.phone = phone
        self.files = list(files)
        self.has_frame = has_frame


class FakePortal:
    """
    State machine over the views home → internships → students → detail.

    *internships* is a list of (title, [Student, ...]).
    """

    def __init__(self, internships, logged_in=True):
        self.internships = internships
        self.logged_in = logged_in
        self.view = "blank"
        self.current = None
        self.student = None
        self.generation = 0
        self.count_texts = {}
        self.pending_download = None
        self.downloads = []
        self.detail_visits = []

    def navigate(self, view, current=None, student=None):
        self.view = view
        if current is not None:
            self.current = current
        self.student = student
        self.generation += 1

    def start_download(self, link):
        self.pending_download = FakeDownload(link.attributes.get("download", link.text))
        self.downloads.append(self.pending_download)

    def el(self, text="", **kwargs):
        return FakeElement(text, portal=self, **kwargs)

    # ── DOM builders ────────────────────────────────────────────────────

    def _internship_table(self, visible=True):
        rows = []
        for i, (title, students) in enumerate(self.internships):
            link = self.el(str(len(students)), on_click=lambda _el, i=i: self.navigate("students", current=i))
            cells = [self.el(title), self.el("Entreprise"), self.el("2026"), self.el("Open"),
                     self.el(self.count_texts.get(title, f"{len(students)} inscrits"), children={"a": [link]})]
            rows.append(self.el(title, children={CELL: cells}))
        return self.el("internships", visible=visible, children={DATA_ROW: rows})

    def _student_table(self, visible=True):
        rows = []
        _title, students = self.internships[self.current]
        for j, student in enumerate(students):
            first = self.el(student.name, on_click=lambda _el, j=j: self._open_detail(j))
            cells = [first, self.el(student.department), self.el(student.date)]
            rows.append(self.el(student.name, children={CELL: cells, STUDENT_LINK: [first]}))
        return self.el("students", visible=visible, children={DATA_ROW: rows})

    def _open_detail(self, j):
        self.detail_visits.append(self.internships[self.current][1][j].name)
        self.navigate("detail", student=j)

    def _detail_frames(self):
        student = self.internships[self.current][1][self.student]
        if not student.has_frame:
            return [self.el("stale frame", visible=False, frame=None)]
        links = [self.el(name, on_click=self.start_download) for name in student.files]
        back = self.el("Retour", on_click=lambda _el: self.navigate("students"))
        frame = self.el("frame", children={
            EMAIL_CELL: [self.el(f" {student.email} ")],
            PHONE_CELL: [self.el(student.phone)],
            FILE_LINKS: links,
            RETURN_LINK: [back],
        })
        return [self.el("stale frame", visible=False, frame=None), self.el("iframe", frame=frame)]

    def query_selector_all(self, selector):
        if self.view == "internships" and selector == INTERNSHIP_TABLE:
            return [self._internship_table(visible=False), self._internship_table()]
        if self.view == "students" and selector == STUDENT_TABLE:
            return [self._student_table(visible=False), self._student_table()]
        if self.view == "detail" and selector == DETAIL_FRAME:
            return self._detail_frames()
        return []


class FakePage:
    def __init__(self, portal):
        self.portal = portal
        self.url = "about:blank"
        self.content_set = None
        self.timeouts = []

    def goto(self, url, wait_until=None, timeout=None):
        self.url = url
        self.portal.navigate("home")

    def go_back(self, wait_until=None, timeout=None):
        self.portal.navigate("students")

    def frame(self, name=None):
        if self.portal.view != "home" or name != MENU_FRAME_NAME:
            return None
        entry = self.portal.el("Gestion des stages", on_click=lambda _el: self.portal.navigate("internships"))
        return self.portal.el("menu", children={MENU_ENTRY: [entry]})

    @contextmanager
    def expect_navigation(self, wait_until=None, timeout=None):
        before = self.portal.generation
        yield
        if self.portal.generation == before:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for navigation")

    @contextmanager
    def expect_download(self, timeout=None):
        info = _EventInfo()
        self.portal.pending_download = None
        yield info
        if self.portal.pending_download is None:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded while waiting for event \"download\"")
        info.value = self.portal.pending_download

    def wait_for_load_state(self, state="load", timeout=None):
        pass

    def wait_for_timeout(self, ms):
        self.timeouts.append(ms)

    def wait_for_selector(self, selector, state=None, timeout=None):
        if selector == LOGIN_FORM and not self.portal.logged_in:
            return self.portal.el("username")
        raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")

    def set_content(self, html):
        self.content_set = html

    def query_selector_all(self, selector):
        return self.portal.query_selector_all(selector)

    def title(self):
        return "IS-Academia"

    def screenshot(self, path=None, full_page=False, timeout=None):
        raise RuntimeError("no screenshots in tests")

    def content(self):
        return "<html></html>"


@pytest.fixture
def config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    cfg = load_config(str(path))
    cfg["xhr_grace_ms"] = 0
    cfg["login_notice_ms"] = 0
    cfg["download_timeout_ms"] = 2_000
    return cfg


@pytest.fixture
def make_portal():
    def _make(internships, logged_in=True):
        portal = FakePortal(internships, logged_in=logged_in)
        return portal, FakePage(portal)
    return _make
