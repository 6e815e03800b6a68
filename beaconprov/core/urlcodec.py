"""Eddystone-URL compression.

A URL is reduced to one scheme byte followed by its remaining characters,
where well-known top level domains collapse into single expansion bytes. The
result must fit the 18 bytes an Eddystone-URL frame has room for.
"""

from __future__ import annotations

from beaconprov.core.errors import InvalidSchemeError, UrlLengthExceededError

MAX_ENCODED_BYTES = 18

# Order matters: "http://www." has to win over "http://".
URL_SCHEMES: tuple[str, ...] = (
    "http://www.",
    "https://www.",
    "http://",
    "https://",
)

URL_EXPANSIONS: tuple[str, ...] = (
    ".com/",
    ".org/",
    ".edu/",
    ".net/",
    ".info/",
    ".biz/",
    ".gov/",
    ".com",
    ".org",
    ".edu",
    ".net",
    ".info",
    ".biz",
    ".gov",
)


def _match_scheme(url: str) -> tuple[int, str]:
    for index, scheme in enumerate(URL_SCHEMES):
        if url.startswith(scheme):
            return index, scheme
    raise InvalidSchemeError(
        f"URL '{url}' must start with one of: {', '.join(URL_SCHEMES)}"
    )


def encode(url: str) -> str:
    """Compress ``url`` and return the bytes as uppercase hex."""
    scheme_index, scheme = _match_scheme(url)
    encoded = [scheme_index]
    position = len(scheme)

    while position < len(url):
        expansion_index = None
        if url[position] == ".":
            for index, expansion in enumerate(URL_EXPANSIONS):
                if url.startswith(expansion, position):
                    expansion_index = index
                    position += len(expansion)
                    break
        if expansion_index is not None:
            encoded.append(expansion_index)
        else:
            encoded.extend(url[position].encode("utf-8"))
            position += 1

        if len(encoded) > MAX_ENCODED_BYTES:
            raise UrlLengthExceededError(
                f"URL '{url}' compresses to more than {MAX_ENCODED_BYTES} bytes"
            )

    return bytes(encoded).hex().upper()


def encoded_length(url: str) -> int:
    return len(encode(url)) // 2
