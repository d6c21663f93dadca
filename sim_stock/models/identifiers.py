# ==============================================================================
# IDENTIFICADORES Y CÓDIGOS
# ==============================================================================
# - id:   identificador global (UUID), exigido por el store
# - code: código legible por humanos (SO-..., TX-..., SIM-...)
# - cid:  código de cliente derivado de nombre + teléfono + email
#
# code y cid se generan UNA sola vez al crear el registro.
# ==============================================================================

import hashlib
import re
import unicodedata
import uuid
from datetime import datetime
from typing import Any, Optional

_UUID_RE = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE,
)


def generate_id() -> str:
    """Nuevo identificador global."""
    return str(uuid.uuid4())


def is_valid_id(value: Any) -> bool:
    """True si el valor ya es un identificador global válido (UUID)."""
    return isinstance(value, str) and bool(_UUID_RE.match(value.strip()))


def generate_code(prefix: str, when: Optional[datetime] = None) -> str:
    """
    Genera un código legible.

    Formato: PREFIJO-AAMMDD-XXXX (ej: SO-240115-3F9A)
    """
    when = when or datetime.now()
    return f"{prefix}-{when.strftime('%y%m%d')}-{uuid.uuid4().hex[:4].upper()}"


def _ascii_fold(text: str) -> str:
    # "đ" no se descompone con NFKD
    text = text.replace('đ', 'd').replace('Đ', 'D')
    normalized = unicodedata.normalize('NFKD', text)
    return ''.join(ch for ch in normalized if not unicodedata.combining(ch))


def generate_cid(name: str, phone: str = '', email: str = '') -> str:
    """
    Genera el código de cliente.

    KH- + iniciales del nombre (máx. 3, sin tildes) + últimos 4 dígitos del
    teléfono. Sin teléfono se usa un hash corto de nombre|teléfono|email.

    Ejemplo: ("Nguyễn Văn An", "0901234567") → "KH-NVA4567"
    """
    words = re.findall(r'[A-Za-z0-9]+', _ascii_fold(name or ''))
    initials = ''.join(w[0] for w in words[:3]).upper() or 'X'
    digits = re.sub(r'\D', '', phone or '')
    if digits:
        suffix = digits[-4:]
    else:
        seed = f"{name}|{phone}|{email}".encode('utf-8')
        suffix = hashlib.sha1(seed).hexdigest()[:4].upper()
    return f"KH-{initials}{suffix}"
