"""
Unit tests for request attribute resolution.
"""

import base64
import logging

import pytest

from myrequest import (
    DomainMismatchError,
    Request,
    RequestEnvironment,
    UrlResolutionError,
)
from myrequest.datastructures import EnvironHeaders
from myrequest.datastructures import FieldState
from myrequest.sansio import utils as sansio_utils


class TestUrlResolution:
    """Tests for URL, script URL and path info."""

    def test_site_request(self, site_environment: RequestEnvironment):
        """Test resolving every URL part of a simple request."""
        request = Request(site_environment)

        assert request.url == "/foo/?page=1"
        assert request.url_without_args == "/foo/"
        assert request.script_url == "/index.php"
        assert request.script_file == "/var/www/index.php"
        assert request.base_url == ""
        assert request.path_info == "foo/"
        assert request.host_info == "http://site.com"
        assert request.absolute_url == "http://site.com/foo/?page=1"
        assert request.home_url == "/index.php"

    def test_url_is_resolved_once(self, site_environment, monkeypatch):
        """Test that the request URI is resolved only on first access."""
        calls = []
        resolve = sansio_utils.resolve_request_uri

        def counting_resolve(environ, *args):
            calls.append(environ)
            return resolve(environ, *args)

        monkeypatch.setattr(sansio_utils, "resolve_request_uri", counting_resolve)
        request = Request(site_environment)

        assert request.url == "/foo/?page=1"
        assert request.url == "/foo/?page=1"
        assert request.path_info == "foo/"
        assert len(calls) == 1

    def test_rewrite_header_wins(self, make_request):
        """Test that the IIS rewrite header comes before the request URI."""
        request = make_request(
            request_uri="/orig", headers={"X-Rewrite-Url": "/rewritten?a=1"}
        )

        assert request.url == "/rewritten?a=1"

    def test_absolute_request_uri(self, make_request):
        """Test that scheme and host are removed from the request URI."""
        request = make_request(request_uri="http://site.com/a/b?c=1")

        assert request.url == "/a/b?c=1"

    def test_orig_path_info(self, make_request):
        """Test the IIS 5 CGI fallback."""
        request = make_request(orig_path_info="/p", query_string="q=1")

        assert request.url == "/p?q=1"

    def test_url_unavailable(self, make_request):
        """Test that a missing request URI is an error."""
        request = make_request()

        with pytest.raises(UrlResolutionError):
            request.url

        assert repr(request) == "<Request '(invalid URL)' [GET]>"

    @pytest.mark.parametrize(
        ("fields", "expected"),
        [
            (
                {"script_filename": "/var/www/index.php", "script_name": "/index.php"},
                "/index.php",
            ),
            (
                {
                    "script_filename": "/var/www/index.php",
                    "script_name": "/cgi-bin/php",
                    "self_path": "/index.php",
                },
                "/index.php",
            ),
            (
                {
                    "script_filename": "/var/www/index.php",
                    "script_name": "/x",
                    "orig_script_name": "/orig/index.php",
                },
                "/orig/index.php",
            ),
            (
                {
                    "script_filename": "/var/www/app/index.php",
                    "script_name": "/app/run",
                    "self_path": "/app/index.php/foo",
                },
                "/app/index.php",
            ),
            (
                {
                    "script_filename": "/var/www/app/index.php",
                    "document_root": "/var/www",
                },
                "/app/index.php",
            ),
            (
                {
                    "script_filename": "C:\\www\\app\\index.php",
                    "document_root": "C:\\www",
                },
                "/app/index.php",
            ),
        ],
    )
    def test_script_url_fallbacks(self, make_request, fields, expected):
        """Test each way of finding the entry script URL."""
        assert make_request(**fields).script_url == expected

    @pytest.mark.parametrize(
        "fields",
        [
            {},
            {"script_filename": "/var/www/index.php", "script_name": "/other.php"},
        ],
    )
    def test_script_url_unavailable(self, make_request, fields):
        """Test that an unknown entry script URL is an error."""
        with pytest.raises(UrlResolutionError):
            make_request(**fields).script_url

    def test_base_url(self, make_request):
        """Test the directory of the entry script."""
        request = make_request(
            script_filename="/var/www/app/index.php", script_name="/app/index.php"
        )

        assert request.base_url == "/app"

    @pytest.mark.parametrize(
        ("uri", "expected"),
        [
            ("/index.php/users/1?x=2", "users/1"),
            ("/caf%C3%A9/x", "café/x"),
            ("/caf%E9", "café"),
            ("/a%20b/", "a b/"),
            ("/a+b", "a+b"),
            ("/", ""),
        ],
    )
    def test_path_info(self, make_request, uri, expected):
        """Test decoding and prefix removal of the path info."""
        request = make_request(
            request_uri=uri,
            script_filename="/var/www/index.php",
            script_name="/index.php",
        )

        assert request.path_info == expected

    def test_path_info_from_self_path(self, make_request):
        """Test the PHP_SELF fallback for a URL outside the script
        directory."""
        request = make_request(
            request_uri="/other/x",
            script_filename="/var/www/app/index.php",
            script_name="/app/index.php",
            self_path="/app/index.php/legacy",
        )

        assert request.path_info == "legacy"

    def test_path_info_unavailable(self, make_request):
        """Test that a URL outside the script directory is an error."""
        request = make_request(
            request_uri="/other/x",
            script_filename="/var/www/app/index.php",
            script_name="/app/index.php",
        )

        with pytest.raises(UrlResolutionError):
            request.path_info

    def test_home_url(self, make_request):
        """Test the home URL with and without the script name."""
        fields = {
            "script_filename": "/var/www/app/index.php",
            "script_name": "/app/index.php",
        }

        assert make_request(**fields).home_url == "/app/index.php"
        assert make_request(config_show_script_name=False, **fields).home_url == "/app/"

    def test_home_url_alias(self, site_environment):
        """Test that an assigned home URL goes through the alias
        resolver."""
        request = Request(
            site_environment, alias_resolver=lambda v: v.replace("@web", "/base")
        )

        request.home_url = "@web/home"
        assert request.home_url == "/base/home"

        del request.home_url
        assert request.home_url == "/index.php"

    def test_absolute_url_strips_tags(self, make_request):
        """Test that markup in the URL is removed."""
        request = make_request(
            request_uri="/a<script>alert(1)</script>b",
            headers={"Host": "site.com"},
        )

        assert request.absolute_url == "http://site.com/aalert(1)b"
        assert request.get_absolute_url(strip_tags=False) == (
            "http://site.com/a<script>alert(1)</script>b"
        )


class TestOverrides:
    """Tests for assigning resolved attributes."""

    def test_url_override_clears_path_info(self, site_environment):
        """Test that a new URL gives a new path info."""
        request = Request(site_environment)
        assert request.path_info == "foo/"

        request.url = "/bar/baz"

        assert request.path_info == "bar/baz"

    def test_script_url_override(self, site_environment):
        """Test that an assigned script URL is normalized and clears the
        values computed from it."""
        request = Request(site_environment)
        assert request.base_url == ""

        request.url = "/app/index.php/x?y=1"
        request.script_url = "app/index.php/"

        assert request.script_url == "/app/index.php"
        assert request.base_url == "/app"
        assert request.path_info == "x"

    def test_script_file_override(self, make_request):
        """Test that a new entry script clears the script URL."""
        request = make_request(
            script_filename="/var/www/index.php",
            script_name="/index.php",
            self_path="/index.php",
        )
        assert request.script_url == "/index.php"

        request.script_file = "/var/www/other.php"

        with pytest.raises(UrlResolutionError):
            request.script_url

    def test_path_info_override_survives_url_override(self, site_environment):
        """Test that an assigned path info is kept."""
        request = Request(site_environment)

        request.path_info = "/custom"
        request.url = "/other"

        assert request.path_info == "custom"
        assert request._attributes.state("path_info") is FieldState.OVERRIDDEN

    def test_query_string_override_reaches_url(self, make_request):
        """Test that a new query string is used by the IIS 5 fallback."""
        request = make_request(orig_path_info="/p", query_string="q=1")
        assert request.url == "/p?q=1"

        request.query_string = "q=2"

        assert request.url == "/p?q=2"
        assert request.query_params == {"q": "2"}

    def test_delete_recomputes(self, site_environment):
        """Test that deleting an override resolves the value again."""
        request = Request(site_environment)

        request.url = "/other"
        del request.url

        assert request.url == "/foo/?page=1"

    def test_query_string_override(self, site_environment):
        """Test that new query parameters follow a new query string."""
        request = Request(site_environment)
        assert request.query_params == {"page": "1"}

        request.query_string = "page=2&q=x"

        assert request.query_params == {"page": "2", "q": "x"}
        assert request.get_query_param("q") == "x"


class TestHostInfo:
    """Tests for scheme, ports and host info."""

    def test_port_from_server(self, make_request):
        """Test that the server port is appended to the server name."""
        request = make_request(server_port=8080)

        assert request.port == 8080
        assert request.secure_port == 443
        assert request.host_info == "http://site.com:8080"

    def test_port_override_clears_host_info(self, make_request):
        """Test that assigning the port changes the host info."""
        request = make_request(server_port=8080)
        assert request.host_info == "http://site.com:8080"

        request.port = "81"

        assert request.port == 81
        assert request.host_info == "http://site.com:81"

        request.port = 80
        assert request.host_info == "http://site.com"

    def test_secure_port(self, make_request):
        """Test host info of a TLS request."""
        request = make_request(secure="on", server_port=8443)

        assert request.scheme == "https"
        assert request.is_secure_connection
        assert request.port == 80
        assert request.secure_port == 8443
        assert request.host_info == "https://site.com:8443"

        request.secure_port = 443
        assert request.host_info == "https://site.com"

    def test_host_header_is_used_as_sent(self, make_request):
        """Test that no port is appended to a Host header."""
        request = make_request(server_port=8080, headers={"Host": "example.com"})

        assert request.host == "example.com"
        assert request.host_info == "http://example.com"

    def test_forwarded_proto(self, make_request):
        """Test that a proxy can mark the request as secure."""
        request = make_request(
            headers={"Host": "site.com", "X-Forwarded-Proto": "HTTPS"}
        )

        assert request.is_secure_connection
        assert request.host_info == "https://site.com"

    def test_scheme_override(self, make_request):
        """Test that assigning the scheme changes the host info."""
        request = make_request(headers={"Host": "site.com"})
        assert request.host_info == "http://site.com"

        request.scheme = "https"

        assert request.host_info == "https://site.com"

    def test_ipv6_server_name(self, make_request):
        """Test that an IPv6 host gets brackets before a port."""
        request = make_request(server_name="::1", server_port=8080)

        assert request.host_info == "http://[::1]:8080"

    def test_no_host(self, make_request):
        """Test that a request without host is an error."""
        request = make_request(server_name=None)

        assert request.host is None
        with pytest.raises(UrlResolutionError):
            request.host_info

    def test_server_values(self, make_request):
        """Test reading the server name and port."""
        request = make_request(server_port=8080)

        assert request.server_name == "site.com"
        assert request.server_port == 8080


class TestMethod:
    """Tests for the request method."""

    def test_environment_method(self, make_request):
        """Test that the method is upper cased."""
        request = make_request(method="post")

        assert request.method == "POST"
        assert request.is_post
        assert not request.is_get

    def test_form_override(self, make_request):
        """Test tunnelling the method through a form field."""
        request = make_request(method="POST", form={"_method": "put"})

        assert request.method == "PUT"
        assert request.is_put

    def test_custom_method_param(self, make_request):
        """Test configuring the form field name."""
        request = make_request(
            method="POST", form={"verb": "delete"}, config_method_param="verb"
        )

        assert request.is_delete

    def test_header_override(self, make_request):
        """Test tunnelling the method through a header."""
        request = make_request(
            method="POST", headers={"X-HTTP-Method-Override": "patch"}
        )

        assert request.is_patch

    def test_assign_method(self, make_request):
        """Test assigning the method."""
        request = make_request()

        request.method = "options"

        assert request.method == "OPTIONS"
        assert request.is_options
        assert request.is_method("GET", "OPTIONS")
        assert not request.is_method("GET", "HEAD")

    def test_head(self, make_request):
        """Test the HEAD predicate."""
        assert make_request(method="HEAD").is_head


class TestHeaders:
    """Tests for header derived values."""

    def test_metadata(self, make_request):
        """Test plain header values."""
        request = make_request(
            headers={
                "Content-Type": "text/plain",
                "Referer": "http://site.com/from",
                "User-Agent": "pytest",
            }
        )

        assert request.content_type == "text/plain"
        assert request.referrer == "http://site.com/from"
        assert request.user_agent == "pytest"

    def test_content_type_without_cgi_key(self):
        """Test a server that passes the content type as a HTTP_ key."""
        env = RequestEnvironment(
            headers=EnvironHeaders({"HTTP_CONTENT_TYPE": "application/json"})
        )

        assert Request(env).content_type == "application/json"

    def test_etags(self, make_request):
        """Test reading entity tags."""
        request = make_request(headers={"If-None-Match": '"abc-gzip", "def"'})

        assert request.etags == ['"abc"', '"def"']
        assert make_request().etags == []

    def test_ajax_and_pjax(self, make_request):
        """Test detecting AJAX and PJAX requests."""
        request = make_request(
            headers={"X-Requested-With": "XMLHttpRequest", "X-Pjax": "true"}
        )

        assert request.is_ajax
        assert request.is_pjax

        request.is_ajax = False
        assert not request.is_pjax

    def test_pjax_requires_ajax(self, make_request):
        """Test that a PJAX header alone is not enough."""
        assert not make_request(headers={"X-Pjax": "true"}).is_pjax

    def test_flash_and_cors(self, make_request):
        """Test detecting Flash and cross origin requests."""
        request = make_request(
            headers={"User-Agent": "Shockwave Flash", "Origin": "http://a.com"}
        )

        assert request.is_flash
        assert request.is_cors
        assert not make_request().is_flash
        assert not make_request().is_cors


class TestClient:
    """Tests for client address and authentication."""

    def test_user_ip(self, make_request):
        """Test the client address and its default."""
        request = make_request(remote_addr="10.0.0.7", remote_host="client.local")

        assert request.user_ip == "10.0.0.7"
        assert request.user_host == "client.local"
        assert request.is_ips(["10.0.0.7", "10.0.0.8"])
        assert make_request().user_ip == "127.0.0.1"

    def test_basic_auth_header(self, make_request):
        """Test reading credentials from the Authorization header."""
        token = base64.b64encode(b"user:se:cret").decode()
        request = make_request(headers={"Authorization": f"Basic {token}"})

        assert request.auth_user == "user"
        assert request.auth_password == "se:cret"

    def test_server_auth_wins(self, make_request):
        """Test that server supplied credentials are used first."""
        token = base64.b64encode(b"user:secret").decode()
        request = make_request(
            auth_user="admin",
            auth_password="pw",
            headers={"Authorization": f"Basic {token}"},
        )

        assert request.auth_user == "admin"
        assert request.auth_password == "pw"

    @pytest.mark.parametrize(
        "header", [None, "Bearer abc", "Basic not-base64!", "Basic dXNlcg=="]
    )
    def test_no_credentials(self, make_request, header):
        """Test headers that carry no usable credentials."""
        headers = {} if header is None else {"Authorization": header}
        request = make_request(headers=headers)

        assert request.auth_user is None
        assert request.auth_password is None


class TestDomainCheck:
    """Tests for the allowed domain list."""

    def test_no_domains(self, make_request):
        """Test that an empty list allows everything."""
        request = make_request(headers={"Host": "evil.com"})

        assert request.is_self_domain()

    def test_allowed(self, make_request):
        """Test a host in the list, with port and subdomains."""
        request = make_request(
            headers={"Host": "Site.com:8080"},
            config_allow_domains=("site.com",),
            config_raise_on_domain_mismatch=True,
        )

        assert request.is_self_domain(throw=True)

        request = make_request(
            server_name="api.site.com",
            headers={"Host": "api.site.com"},
            config_allow_domains=(".site.com",),
            config_raise_on_domain_mismatch=True,
        )

        assert request.is_self_domain()

    def test_raise_on_mismatch(self, make_request):
        """Test that a foreign host fails the request."""
        with pytest.raises(DomainMismatchError) as exc_info:
            make_request(
                headers={"Host": "evil.com"},
                config_allow_domains=("site.com",),
                config_raise_on_domain_mismatch=True,
            )

        assert exc_info.value.host == "evil.com"
        assert exc_info.value.description == "Invalid domain: evil.com"

    def test_log_on_mismatch(self, make_request, caplog):
        """Test that a foreign host is logged when not raising."""
        with caplog.at_level(logging.ERROR, logger="myrequest"):
            request = make_request(
                headers={"Host": "evil.com"}, config_allow_domains=("site.com",)
            )

        assert "Invalid domain: evil.com" in caplog.text
        assert request.is_self_domain() is False

    def test_server_name_must_match(self, make_request):
        """Test that the server name is checked as well."""
        request = make_request(
            server_name="internal.local",
            headers={"Host": "site.com"},
            config_allow_domains=("site.com",),
        )

        assert request.is_self_domain() is False
        with pytest.raises(DomainMismatchError):
            request.is_self_domain(throw=True)


class TestNegotiation:
    """Tests for content type and language negotiation."""

    def test_acceptable_content_types(self, make_request):
        """Test ordering the Accept header."""
        request = make_request(
            headers={"Accept": "text/html;q=0.5, application/json, */*;q=0.1"}
        )

        accept = request.acceptable_content_types
        assert list(accept) == ["application/json", "text/html", "*/*"]
        assert accept.best == "application/json"

    def test_parse_accept_header_on_class(self):
        """Test that the header parser is reachable from the class."""
        assert list(Request.parse_accept_header("b/b;q=0.5, a/a")) == ["a/a", "b/b"]

    def test_acceptable_languages(self, make_request):
        """Test ordering the Accept-Language header."""
        request = make_request(headers={"Accept-Language": "de;q=0.8, en-US"})

        assert request.acceptable_languages == ["en-US", "de"]
        assert request.get_preferred_language(["de", "fr"]) == "de"
        assert request.get_preferred_language(["en", "de"]) == "en"

    def test_preferred_language_fallbacks(self, make_request):
        """Test the default locale and the first supported language."""
        request = make_request(headers={"Accept-Language": "ja"})

        assert request.get_preferred_language() == "en"
        assert request.get_preferred_language(["ru-RU", "pl"]) == "ru-RU"
        assert make_request(config_default_locale="fr").get_preferred_language() == "fr"

    def test_assign_languages(self, make_request):
        """Test assigning the acceptable languages."""
        request = make_request(headers={"Accept-Language": "de"})

        request.acceptable_languages = ("en-us", "de", "ru-ru")

        assert request.acceptable_languages == ["en-us", "de", "ru-ru"]
        assert request.get_preferred_language(["ru", "de"]) == "de"


class TestConfiguration:
    """Tests for request configuration."""

    def test_unknown_option(self, site_environment):
        """Test that a misspelled option is rejected."""
        with pytest.raises(TypeError, match="allowed_domains"):
            Request(site_environment, allowed_domains=("site.com",))

    def test_subclass_configuration(self, site_environment):
        """Test configuring through a subclass."""

        class AppRequest(Request):
            show_script_name = False
            default_locale = "de"

        request = AppRequest(site_environment)

        assert request.home_url == "/"
        assert request.get_preferred_language() == "de"

    def test_repr(self, site_environment):
        """Test the representation."""
        assert repr(Request(site_environment)) == "<Request '/foo/?page=1' [GET]>"
