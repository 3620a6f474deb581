from __future__ import annotations

from typing import Any

import orjson


def dumps(obj: Any, *, option: int | None = None) -> str:
    """Serialize with orjson, indented by default."""
    opts = option or orjson.OPT_INDENT_2
    return orjson.dumps(obj, option=opts).decode()


def loads(s: str | bytes | bytearray) -> Any:
    return orjson.loads(s)
