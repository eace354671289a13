"""
Unit tests for the research clients. HTTP is faked with a client whose
request() returns canned httpx.Response objects.
"""

from unittest.mock import MagicMock, patch

import httpx

from taskmarket.agent.research import ask_perplexity, ask_tavily, fetch_url_text, format_tavily

MOD = "taskmarket.agent.research"


def _client(response: httpx.Response | Exception) -> MagicMock:
    client = MagicMock()
    if isinstance(response, Exception):
        client.request.side_effect = response
    else:
        client.request.return_value = response
    return client


class TestFetchUrlText:
    def test_strips_markup_and_caps_length(self) -> None:
        html = "<html><style>p{}</style><script>x()</script><p>Hello</p>  <b>world</b>" + "a" * 7000 + "</html>"
        text = fetch_url_text("https://example.com", _client(httpx.Response(200, text=html)))
        assert text.startswith("Hello world a")
        assert len(text) == 6000

    def test_non_2xx_is_none(self) -> None:
        assert fetch_url_text("https://example.com", _client(httpx.Response(404, text="nope"))) is None

    def test_network_error_is_none(self) -> None:
        assert fetch_url_text("https://example.com", _client(httpx.ConnectError("refused"))) is None

    def test_blank_url_is_none(self) -> None:
        client = _client(httpx.Response(200, text="x"))
        assert fetch_url_text("  ", client) is None
        client.request.assert_not_called()

    def test_uses_own_client_when_none_given(self) -> None:
        with patch(f"{MOD}.httpx.Client") as mock_cls:
            mock_cls.return_value.__enter__.return_value.request.return_value = httpx.Response(200, text="<p>hi</p>")
            assert fetch_url_text("https://example.com") == "hi"


class TestPerplexity:
    def test_without_key_is_none(self) -> None:
        client = _client(httpx.Response(200, json={}))
        assert ask_perplexity("solana", client) is None
        client.request.assert_not_called()

    def test_returns_message_content(self) -> None:
        body = {"choices": [{"message": {"content": "  - bullet  "}}]}
        client = _client(httpx.Response(200, json=body))
        with patch(f"{MOD}.PERPLEXITY_API_KEY", "pplx-key"):
            assert ask_perplexity("solana", client) == "- bullet"
        method, url = client.request.call_args.args
        kwargs = client.request.call_args.kwargs
        assert (method, url) == ("POST", "https://api.perplexity.ai/chat/completions")
        assert kwargs["headers"]["Authorization"] == "Bearer pplx-key"
        assert kwargs["json"]["temperature"] == 0.1
        assert kwargs["json"]["messages"][1] == {"role": "user", "content": "solana"}

    def test_error_status_is_none(self) -> None:
        with patch(f"{MOD}.PERPLEXITY_API_KEY", "pplx-key"):
            assert ask_perplexity("solana", _client(httpx.Response(500, text="boom"))) is None

    def test_empty_choices_is_none(self) -> None:
        with patch(f"{MOD}.PERPLEXITY_API_KEY", "pplx-key"):
            assert ask_perplexity("solana", _client(httpx.Response(200, json={"choices": []}))) is None

    def test_non_object_body_is_none(self) -> None:
        with patch(f"{MOD}.PERPLEXITY_API_KEY", "pplx-key"):
            assert ask_perplexity("solana", _client(httpx.Response(200, json=["x"]))) is None
            assert ask_perplexity("solana", _client(httpx.Response(200, json={"choices": [{"message": "x"}]}))) is None


class TestTavily:
    def test_format_answer_and_sources(self) -> None:
        data = {
            "answer": "Solana is fast.",
            "results": [{"title": f"T{i}", "url": f"https://s{i}.io"} for i in range(7)],
        }
        out = format_tavily(data)
        lines = out.splitlines()
        assert lines[0] == "Solana is fast."
        assert lines[1] == "- T0 (https://s0.io)"
        assert len(lines) == 6

    def test_format_without_answer(self) -> None:
        assert format_tavily({"results": [{"title": "A", "url": "u"}]}) == "- A (u)"
        assert format_tavily({}) == ""

    def test_ask_sends_api_key_in_body(self) -> None:
        client = _client(httpx.Response(200, json={"answer": "yes", "results": []}))
        with patch(f"{MOD}.TAVILY_API_KEY", "tvly-key"):
            assert ask_tavily("is solana fast", client) == "yes"
        payload = client.request.call_args.kwargs["json"]
        assert payload["api_key"] == "tvly-key"
        assert payload["include_answer"] is True
        assert payload["max_results"] == 5

    def test_empty_result_is_none(self) -> None:
        with patch(f"{MOD}.TAVILY_API_KEY", "tvly-key"):
            assert ask_tavily("q", _client(httpx.Response(200, json={}))) is None

    def test_without_key_is_none(self) -> None:
        assert ask_tavily("q", _client(httpx.Response(200, json={"answer": "x"}))) is None

    def test_non_object_body_is_none(self) -> None:
        with patch(f"{MOD}.TAVILY_API_KEY", "tvly-key"):
            assert ask_tavily("q", _client(httpx.Response(200, json=["x"]))) is None

    def test_non_string_answer_is_coerced(self) -> None:
        with patch(f"{MOD}.TAVILY_API_KEY", "tvly-key"):
            assert ask_tavily("q", _client(httpx.Response(200, json={"answer": 42}))) == "42"
