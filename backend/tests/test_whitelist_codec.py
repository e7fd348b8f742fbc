"""
Whitelist text codec: parsing and surgical list replacement.

Focus:
- Guards inside comments or strings are ignored; nested brackets do not end a
  list early.
- serialize touches only the target list body; everything else stays
  byte-identical.
- Existing quote style and CRLF newlines are reused.
"""
from __future__ import annotations

import pytest

from backend.whitelist.codec import (
    WhitelistTextCodec,
    format_list_body,
    parse_list_body,
    parse_whitelist,
    replace_role_list,
)
from backend.whitelist.errors import InvalidIdentifierFormatError, RoleBlockMissingError


UID1 = "76561198000000001"
UID2 = "76561198000000002"
UID3 = "76561198000000003"


def test_parse_sample_document(sample_text):
    doc = parse_whitelist(sample_text)
    assert doc["S3"] == [UID1, UID2]
    assert doc["CAS"] == []
    assert doc["ALL"] == ["76561198000000010"]
    assert doc["ADMIN"] == ["76561198000000010", "76561198000000011"]
    # roles without a block parse as empty
    assert doc["MEDIA"] == []
    # registry order
    assert list(doc)[:5] == ["S3", "CAS", "S1", "OPFOR", "ALL"]


def test_parse_accepts_double_quotes_and_whitespace():
    text = 'if( _type   isEqualTo  "CAS" )then{\n  _return=[ "%s" , "%s" ];\n};\n' % (UID1, UID2)
    assert parse_whitelist(text)["CAS"] == [UID1, UID2]


def test_parse_drops_duplicates_and_non_digit_tokens():
    body = f"'{UID1}', 'abc', '{UID1}', {UID2}, '', '7656-1'"
    assert parse_list_body(body) == [UID1, UID2]


def test_guard_inside_comment_is_ignored():
    text = (
        "// if (_type isEqualTo 'S3') then { _return = ['1']; };\n"
        "/* if (_type isEqualTo 'S3') then { _return = ['2']; }; */\n"
        "if (_type isEqualTo 'S3') then {\n"
        f"\t_return = ['{UID3}'];\n"
        "};\n"
    )
    assert parse_whitelist(text)["S3"] == [UID3]


def test_guard_inside_string_is_ignored():
    text = (
        "_note = \"if (_type isEqualTo 'S3') then { _return = ['1']; };\";\n"
        "if (_type isEqualTo 'S3') then { _return = ['%s']; };\n" % UID1
    )
    assert parse_whitelist(text)["S3"] == [UID1]


def test_first_guard_wins():
    text = (
        f"if (_type isEqualTo 'S3') then {{ _return = ['{UID1}']; }};\n"
        f"if (_type isEqualTo 'S3') then {{ _return = ['{UID2}']; }};\n"
    )
    assert parse_whitelist(text)["S3"] == [UID1]


def test_nested_brackets_do_not_end_list_early():
    text = (
        "if (_type isEqualTo 'S3') then {\n"
        f"\t_return = ['{UID1}', [1, 2], '{UID2}'];\n"
        "};\n"
    )
    codec = WhitelistTextCodec(["S3"])
    span = codec.locate(text, "S3")
    assert span is not None
    assert text[span.body_end] == "]"
    assert text[span.body_end + 1] == ";"
    assert codec.parse(text)["S3"] == [UID1, UID2]


def test_bracket_inside_comment_in_list_is_skipped():
    text = (
        "if (_type isEqualTo 'S3') then {\n"
        "\t_return = [\n"
        f"\t\t'{UID1}', // old ] entry\n"
        f"\t\t'{UID2}'\n"
        "\t];\n"
        "};\n"
    )
    assert parse_whitelist(text)["S3"] == [UID1, UID2]


def test_nested_return_in_inner_block_is_not_used():
    text = (
        "if (_type isEqualTo 'S3') then {\n"
        "\tif (true) then { _return = ['1']; };\n"
        f"\t_return = ['{UID1}'];\n"
        "};\n"
    )
    assert parse_whitelist(text)["S3"] == [UID1]


@pytest.mark.parametrize(
    "text",
    [
        "",
        "garbage without guards",
        "if (_type isEqualTo 'S3') then { hint 'no return'; };",
        "if (_type isEqualTo 'S3') then { _return = ['76561198000000001'",
        "if (_type isEqualTo 'S3') then {",
    ],
)
def test_parse_never_raises_on_malformed_text(text):
    assert parse_whitelist(text)["S3"] == []


def test_serialize_replaces_only_target_body(sample_text):
    codec = WhitelistTextCodec()
    out = codec.serialize(sample_text, "S3", [UID1, UID2, UID3])
    expected = sample_text.replace(
        f"\t\t'{UID2}'\n\t];",
        f"\t\t'{UID2}',\n\t\t'{UID3}'\n\t];",
        1,
    )
    assert out == expected


def test_serialize_keeps_other_blocks_and_comments_byte_identical(sample_text):
    codec = WhitelistTextCodec()
    span = codec.locate(sample_text, "CAS")
    out = codec.serialize(sample_text, "CAS", [UID3])
    assert out[: span.body_start] == sample_text[: span.body_start]
    assert out.endswith(sample_text[span.body_end:])
    assert "/*\n    Apex Framework whitelist." in out
    assert "// head admin" in out


def test_serialize_empty_list_format(sample_text):
    out = WhitelistTextCodec().serialize(sample_text, "ALL", [])
    assert "if (_type isEqualTo 'ALL') then {\n\t_return = [\n\t];\n};" in out
    assert parse_whitelist(out)["ALL"] == []


def test_serialize_into_empty_inline_list(sample_text):
    out = WhitelistTextCodec().serialize(sample_text, "CAS", [UID1])
    assert f"if (_type isEqualTo 'CAS') then {{\n\t_return = [\n\t\t'{UID1}'\n\t];\n}};" in out


def test_serialize_reuses_double_quotes():
    text = f'if (_type isEqualTo "S3") then {{\n    _return = [\n        "{UID1}"\n    ];\n}};\n'
    out = replace_role_list(text, "S3", [UID1, UID2])
    assert out == (
        f'if (_type isEqualTo "S3") then {{\n    _return = [\n        "{UID1}",\n        "{UID2}"\n    ];\n}};\n'
    )


def test_serialize_preserves_crlf():
    text = f"if (_type isEqualTo 'S3') then {{\r\n\t_return = [\r\n\t\t'{UID1}'\r\n\t];\r\n}};\r\n"
    out = replace_role_list(text, "S3", [UID1, UID2])
    assert "\n" not in out.replace("\r\n", "")
    assert parse_whitelist(out, ["S3"])["S3"] == [UID1, UID2]


def test_round_trip_law(sample_text):
    codec = WhitelistTextCodec()
    uids = [UID3, UID1, "76561198000000042"]
    for role in ("S3", "CAS", "ALL", "ADMIN"):
        out = codec.serialize(sample_text, role, uids)
        assert codec.parse(out)[role] == uids


def test_serialize_rejects_non_digit_entries(sample_text):
    with pytest.raises(InvalidIdentifierFormatError):
        WhitelistTextCodec().serialize(sample_text, "S3", ["x'];hint 'pwned"])


def test_serialize_missing_block_raises(sample_text):
    with pytest.raises(RoleBlockMissingError) as exc:
        WhitelistTextCodec().serialize(sample_text, "MEDIA", [UID1])
    assert exc.value.code == "role_block_missing"


def test_format_list_body_space_indent():
    assert format_list_body([UID1], indent="    ") == f"\n        '{UID1}'\n    "
