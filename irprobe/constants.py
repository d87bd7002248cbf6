"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

PARAM_PREFIX = "param:"
CAUGHT_EXCEPTION_PREFIX = "caught_exception"
UNSUPPORTED_PREFIX = "unsupported:"

FUNC_REF_TEMPLATE = "<function:{name}>"
CLASS_REF_TEMPLATE = "<class:{name}>"

# Conventional member names
ENTRY_METHOD_NAME = "<module>"
CLASS_BODY_METHOD_NAME = "<body>"

# Serialized unit layout
UNIT_MAGIC = b"IRPB"
DEFAULT_UNIT_NAME = "script"

# Listing markers
LISTING_COMMENT = "//"
LISTING_MEMBER_END = "end"
LISTING_OWNER_SEPARATOR = " in "

DEFAULT_LANGUAGE = "python"
