from html import unescape

from secretlink.models import parse_payload
from secretlink.templating import build_environment

from .conftest import token_of


class TestTemplateHelpers:

    def test_filter_and_function(self, issuer, cipher):
        env = build_environment(issuer)

        as_filter = unescape(env.from_string("{{ path | secret(30, true, 'media') }}").render(path="media/report.pdf"))
        as_function = unescape(env.from_string("{{ secret('/queuedresize/abc123') }}").render())

        storage = parse_payload(cipher.decrypt(token_of(as_filter)))
        assert storage.path == "media/report.pdf"
        assert storage.delete_after_download is True

        url = parse_payload(cipher.decrypt(token_of(as_function)))
        assert url.url == "/queuedresize/abc123"

    def test_output_is_html_escaped(self, issuer):
        env = build_environment(issuer)
        assert "&amp;expires=" in env.from_string("{{ 'a.txt' | secret }}").render()

    def test_refused_targets_render_empty(self, issuer):
        env = build_environment(issuer)
        template = env.from_string("[{{ 'http://evil.example/x' | secret }}][{{ secret('../x') }}][{{ missing | secret }}]")

        assert template.render() == "[][][]"

    def test_app_exposes_environment(self, app):
        rendered = app.state.templates.from_string("{{ secret('a.txt') }}").render()
        assert rendered.startswith("http://testserver/secret-download?t=")
