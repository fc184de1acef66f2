from shark.tools.limits import decode_process_output, truncate_output


def test_truncate_output_respects_line_limit() -> None:
    text, truncated = truncate_output("a\nb\nc\n", max_lines=2)
    assert truncated is True
    assert text == "a\nb\n[truncated]"


def test_truncate_output_respects_byte_limit() -> None:
    text, truncated = truncate_output("é" * 10, max_bytes=5)
    assert truncated is True
    assert text == "[truncated]"


def test_truncate_output_leaves_short_text() -> None:
    assert truncate_output("short") == ("short", False)


def test_decode_process_output() -> None:
    assert decode_process_output(None) == ""
    assert decode_process_output(b"ok\n") == "ok\n"
    assert decode_process_output(b"\xffbad") == "�bad"
    assert decode_process_output(b"1\n2\n3\n", max_lines=1) == "1\n[truncated]"
