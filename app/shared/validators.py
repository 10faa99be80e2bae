"""Shared validation utilities"""

import re
import uuid
from datetime import date, datetime
from typing import Optional

BR_PHONE_PATTERN = re.compile(r"^\(\d{2}\) \d{5}-\d{4}$")
CPF_PATTERN = re.compile(r"^\d{3}\.\d{3}\.\d{3}-\d{2}$")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_br_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate a Brazilian mobile number in the canonical "(XX) XXXXX-XXXX" form.

    Bare digits (11 of them) are accepted and reformatted, so "51999998888"
    becomes "(51) 99999-8888".

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    if BR_PHONE_PATTERN.match(phone):
        return phone

    digits = re.sub(r"\D", "", phone)
    if len(digits) == 13 and digits.startswith("55"):
        digits = digits[2:]
    if len(digits) != 11:
        raise ValueError("Formato de telefone inválido. Use (XX) XXXXX-XXXX.")

    return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"


def validate_cpf(cpf: Optional[str]) -> Optional[str]:
    """
    Validate CPF format "XXX.XXX.XXX-XX".

    Raises:
        ValueError: If the CPF is not in the expected format
    """
    if not cpf:
        return None
    cpf = cpf.strip()
    if not CPF_PATTERN.match(cpf):
        raise ValueError("CPF deve estar no formato XXX.XXX.XXX-XX")
    return cpf


def parse_birth_date(value) -> date:
    """
    Parse a birth date given as DD/MM/YYYY (form input) or YYYY-MM-DD.

    Raises:
        ValueError: If the date cannot be parsed or lies in the future
    """
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        parsed = value
    else:
        value = (value or "").strip()
        for fmt in ("%d/%m/%Y", "%Y-%m-%d"):
            try:
                parsed = datetime.strptime(value, fmt).date()
                break
            except ValueError:
                continue
        else:
            raise ValueError("Data de nascimento inválida. Use DD/MM/AAAA.")

    if parsed > date.today():
        raise ValueError("Data de nascimento não pode ser no futuro")
    return parsed
