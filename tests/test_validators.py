from datetime import date

import pytest

from app.shared.validators import parse_birth_date, validate_br_phone, validate_cpf, validate_uuid


def test_phone_canonical_form_is_kept():
    assert validate_br_phone("(51) 99999-8888") == "(51) 99999-8888"


@pytest.mark.parametrize("raw", ["51999998888", "+55 51 99999-8888", "51 99999 8888"])
def test_phone_digits_are_reformatted(raw):
    assert validate_br_phone(raw) == "(51) 99999-8888"


@pytest.mark.parametrize("raw", ["9999-8888", "(51) 9999-888", "abc"])
def test_invalid_phone_is_rejected(raw):
    with pytest.raises(ValueError):
        validate_br_phone(raw)


def test_cpf_format():
    assert validate_cpf("123.456.789-00") == "123.456.789-00"
    assert validate_cpf("") is None
    with pytest.raises(ValueError):
        validate_cpf("12345678900")


def test_birth_date_formats():
    assert parse_birth_date("20/05/1980") == date(1980, 5, 20)
    assert parse_birth_date("1980-05-20") == date(1980, 5, 20)
    with pytest.raises(ValueError):
        parse_birth_date("31/02/1980")
    with pytest.raises(ValueError):
        parse_birth_date("01/01/2999")


def test_uuid():
    assert validate_uuid("8c4a2a0e-8a61-4d6c-9a0e-2f4f8b1f6c11")
    assert not validate_uuid("not-a-uuid")
