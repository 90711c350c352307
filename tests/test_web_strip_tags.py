from lio_agent.agent.tools.web import _normalize, _strip_tags, _validate_url


def test_strip_tags_removes_script_and_style_blocks() -> None:
    text = _strip_tags("<p>hello </p><script>alert(1)</script><style>.x{}</style><div>world</div>")
    assert text == "hello world"


def test_strip_tags_handles_script_end_tag_with_space() -> None:
    text = _strip_tags("<script>alert(1)</script >safe")
    assert text == "safe"


def test_strip_tags_unescapes_entities() -> None:
    assert _strip_tags("<b>A &amp; B</b>") == "A & B"


def test_normalize_collapses_whitespace() -> None:
    assert _normalize("a   b\t c\n\n\n\nd") == "a b c\n\nd"


def test_validate_url() -> None:
    assert _validate_url("https://example.com/page") == (True, "")
    assert _validate_url("ftp://example.com")[0] is False
    assert _validate_url("https://")[0] is False
