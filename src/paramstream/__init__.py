"""paramstream — URL-encoded parameters as lazy, parallel-capable streams.

Parses query strings and ``application/x-www-form-urlencoded`` bodies
into name/value pairs, decoding each pair only when something asks for it.

Basic usage::

    from paramstream import parse

    params = parse("q=free+threading&tag=a&tag=b").to_multi_dict()
    # {"q": ["free threading"], "tag": ["a", "b"]}

Streams::

    from paramstream import parse

    total = (
        parse(body)
        .stream()
        .parallel()
        .filter(lambda name, value: name.startswith("item"))
        .count()
    )

Composing::

    from paramstream import HttpUriBuilder

    uri = HttpUriBuilder.for_host("example.com").path("search").query_parameter("q", "x").to_uri()
"""

# Declare free-threading support (PEP 703)
_Py_mod_gil = 0

__version__ = "0.1.0.dev0"
__all__ = [
    "DuplicateNameError",
    "DuplicateNameStrategy",
    "HttpUriBuilder",
    "MalformedEncodingError",
    "MissingValueError",
    "ParallelConfig",
    "ParamStreamError",
    "ParameterBuilder",
    "ParameterParser",
    "ParameterStream",
    "ParseError",
    "ParserConfig",
    "QueryParams",
    "ReaderParser",
    "SequenceParser",
    "SourceReadError",
    "configure_pool",
    "parse",
    "parse_reader",
]


# Public name -> module that defines it
_LAZY_IMPORTS: dict[str, str] = {
    "DuplicateNameError": "paramstream.errors",
    "DuplicateNameStrategy": "paramstream.duplicates",
    "HttpUriBuilder": "paramstream.uri",
    "MalformedEncodingError": "paramstream.errors",
    "MissingValueError": "paramstream.errors",
    "ParallelConfig": "paramstream.config",
    "ParamStreamError": "paramstream.errors",
    "ParameterBuilder": "paramstream.builder",
    "ParameterParser": "paramstream.parser",
    "ParameterStream": "paramstream.stream",
    "ParseError": "paramstream.errors",
    "ParserConfig": "paramstream.config",
    "QueryParams": "paramstream.query",
    "ReaderParser": "paramstream.parser",
    "SequenceParser": "paramstream.parser",
    "SourceReadError": "paramstream.errors",
    "configure_pool": "paramstream._internal.pool",
    "parse": "paramstream.parser",
    "parse_reader": "paramstream.parser",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import paramstream`` fast while providing a clean top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)
    from importlib import import_module

    return getattr(import_module(module_name), name)
