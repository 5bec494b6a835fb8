import pytest

from vcfld.fields import split_columns, split_field, split_key_value


def test_split_field_multiple() -> None:
    assert list(split_field("A,TG,C", ",")) == ["A", "TG", "C"]


def test_split_field_without_separator_yields_whole_field() -> None:
    assert list(split_field("NS=3", ";")) == ["NS=3"]


def test_split_field_trailing_separator_yields_empty_subfield() -> None:
    assert list(split_field("3,1,", ",")) == ["3", "1", ""]
    assert list(split_field("", ",")) == [""]


def test_split_field_is_lazy() -> None:
    it = split_field("a;b;c", ";")
    assert next(it) == "a"
    assert next(it) == "b"


def test_split_field_rejects_multichar_separator() -> None:
    with pytest.raises(ValueError):
        list(split_field("a::b", "::"))


def test_split_columns_tabs_and_spaces() -> None:
    assert split_columns("1\t100  rs1\tA\n") == ["1", "100", "rs1", "A"]


def test_split_key_value() -> None:
    assert split_key_value("AF=0.3,0.1") == ("AF", "0.3,0.1")
    assert split_key_value("DB") == ("DB", None)
    assert split_key_value("X=a=b") == ("X", "a=b")
