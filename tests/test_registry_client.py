"""Tests del adaptador HTTP del registro (sesión, CAPTCHA, envío del formulario)."""

import gzip
from urllib.parse import parse_qs

import httpx
import pytest
from fixtures.btk_responses import BLOCKED_WITH_DECISION, CAPTCHA_PNG, FORM_PAGE

from adapters.registry.client import RegistryClient, make_cache_buster, maybe_gunzip
from core.domain.errors import ErrorKind, QueryError

BASE_PATH = "/sitesorgu/"
CAPTCHA_PATH = "/sitesorgu/secureimage/captcha.php"


class FakeRegistry:
    """Servidor simulado: cookie de sesión, imagen y página de resultado."""

    def __init__(self, *, bootstrap_status=200, captcha_body=CAPTCHA_PNG, result_html=BLOCKED_WITH_DECISION):
        self.bootstrap_status = bootstrap_status
        self.captcha_body = captcha_body
        self.result_html = result_html
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == BASE_PATH and request.method == "GET":
            return httpx.Response(
                self.bootstrap_status,
                text=FORM_PAGE,
                headers={"Set-Cookie": "PHPSESSID=abc123; Path=/"},
            )
        if request.url.path == CAPTCHA_PATH:
            return httpx.Response(200, content=self.captcha_body, headers={"Content-Type": "image/png"})
        if request.url.path == BASE_PATH and request.method == "POST":
            return httpx.Response(200, text=self.result_html)
        return httpx.Response(404)


def _ticking_clock(start=1_700_000_000_123_456_789, step=1_000):
    state = {"now": start}

    def clock():
        state["now"] += step
        return state["now"]

    return clock


@pytest.fixture
def fake():
    return FakeRegistry()


@pytest.fixture
def client(settings, fake):
    return RegistryClient(settings, transport=httpx.MockTransport(fake), clock_ns=_ticking_clock())


class TestCacheBuster:
    """Parámetro `t` de la URL del CAPTCHA."""

    def test_microtime_format(self):
        assert make_cache_buster(1_700_000_000_123_456_789) == "0.23456789 1700000000"

    def test_each_fetch_uses_a_new_value(self, client):
        """Dos descargas seguidas nunca comparten cache-buster."""
        first = httpx.URL(client.captcha_url()).params["t"]
        second = httpx.URL(client.captcha_url()).params["t"]
        assert first != second


class TestSessionFlow:
    """Arranque de sesión, descarga del CAPTCHA y envío del formulario."""

    def test_full_attempt_shares_cookies(self, client, fake):
        """Las tres peticiones de un intento usan el mismo cookie jar."""
        session = client.open_session()
        try:
            image = client.fetch_captcha(session)
            html = client.submit(session, "example-blocked.com", "XK3F9")
        finally:
            session.close()

        assert image == CAPTCHA_PNG
        assert "engellenmiştir" in html
        assert session.closed
        captcha_request, submit_request = fake.requests[1], fake.requests[2]
        assert "PHPSESSID=abc123" in captcha_request.headers.get("cookie", "")
        assert "PHPSESSID=abc123" in submit_request.headers.get("cookie", "")

    def test_submit_form_fields(self, client, fake):
        """El POST replica los campos del formulario web."""
        with client.open_session() as session:
            client.submit(session, "example.com", "AB12C")

        request = fake.requests[-1]
        form = {k: v[0] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}
        assert form == {
            "deger": "example.com",
            "ipw": "",
            "kat": "",
            "tr": "",
            "eg": "",
            "ayrintili": "0",
            "submit": "Sorgula",
            "security_code": "AB12C",
        }
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.headers["origin"] == "https://internet.btk.gov.tr"
        assert request.headers["referer"] == "https://internet.btk.gov.tr/sitesorgu/"

    def test_browser_headers(self, client, fake, settings):
        with client.open_session():
            pass
        request = fake.requests[0]
        assert request.headers["user-agent"] == settings.user_agent
        assert request.headers["accept-language"].startswith("tr-TR")

    def test_fresh_sessions_do_not_share_cookies(self, settings):
        """Una sesión nueva empieza con el jar vacío."""
        fake = FakeRegistry()
        client = RegistryClient(settings, transport=httpx.MockTransport(fake))
        with client.open_session() as first:
            assert len(first.cookies) == 1
        with client.open_session():
            pass
        second_bootstrap = fake.requests[1]
        assert "cookie" not in second_bootstrap.headers

    def test_bootstrap_non_200_is_fatal(self, settings):
        fake = FakeRegistry(bootstrap_status=503)
        client = RegistryClient(settings, transport=httpx.MockTransport(fake))
        with pytest.raises(QueryError) as info:
            client.open_session()
        assert info.value.kind is ErrorKind.HTTP_STATUS_ERROR
        assert info.value.details["status_code"] == 503

    def test_empty_captcha_image(self, settings):
        fake = FakeRegistry(captcha_body=b"")
        client = RegistryClient(settings, transport=httpx.MockTransport(fake))
        with client.open_session() as session:
            with pytest.raises(QueryError) as info:
                client.fetch_captcha(session)
        assert info.value.kind is ErrorKind.CAPTCHA_DOWNLOAD_EMPTY

    def test_gzip_image_without_content_encoding(self, settings):
        """Una imagen comprimida sin cabecera Content-Encoding se descomprime."""
        fake = FakeRegistry(captcha_body=gzip.compress(CAPTCHA_PNG))
        client = RegistryClient(settings, transport=httpx.MockTransport(fake))
        with client.open_session() as session:
            assert client.fetch_captcha(session) == CAPTCHA_PNG

    def test_network_error(self, settings):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = RegistryClient(settings, transport=httpx.MockTransport(handler))
        with pytest.raises(QueryError) as info:
            client.open_session()
        assert info.value.kind is ErrorKind.NETWORK_ERROR

    def test_redirect_loop(self, settings):
        def handler(request):
            return httpx.Response(302, headers={"Location": "https://internet.btk.gov.tr/sitesorgu/"})

        client = RegistryClient(settings, transport=httpx.MockTransport(handler))
        with pytest.raises(QueryError) as info:
            client.open_session()
        assert info.value.kind is ErrorKind.TOO_MANY_REDIRECTS

    def test_classify_delegates_to_parser(self, client):
        assert client.classify(BLOCKED_WITH_DECISION).blocked is True


class TestMaybeGunzip:
    def test_plain_body_is_untouched(self):
        assert maybe_gunzip(CAPTCHA_PNG) == CAPTCHA_PNG

    def test_corrupt_gzip_is_network_error(self):
        with pytest.raises(QueryError) as info:
            maybe_gunzip(b"\x1f\x8b\x08\x00garbage")
        assert info.value.kind is ErrorKind.NETWORK_ERROR
