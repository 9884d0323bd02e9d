# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Voxgig Reshape
# ==============
#
# Reshape an in-memory JSON-like source document into the structure
# declared by a template document. The template is "by-example": it
# looks like the desired output, with leaf strings that say where each
# value comes from.
#
# Template syntax
# - "/a/b/c": path into the source; lists along the way are flattened.
# - "'text'": literal text, never resolved.
# - "[name]": (object key) convert this object into a list of objects.
# - "...name": (object key) spread this list across the enclosing
#   "[name]" conversion, one element per generated object.
#
# Main utilities
# - transform: reshape a source document using a template.
# - transform_many: reshape using a list of named templates.
# - render: render a template node with an existing render state.
# - resolve: resolve a path expression against the source.
#
# Minor utilities
# - isnode, islist, ismap, isscalar: identify value kinds.
# - isliteral, ispath: identify template leaf kinds.
# - literal: the text of a literal template leaf.
# - parsekey: parse the decorations of a template key.
# - parsepath: split a path expression into segments.
# - typify: name the kind of a value.
# - clone: create a copy of a JSON-like data structure.
# - getprop: safely get a property value by key.
# - stringify: human-friendly string version of a value.
# - jsonify: formatted JSON string version of a value.
# - pathify: human-friendly string version of a template location.


import json
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple


log = logging.getLogger(__name__)


# Template markers.
S_SPREAD = '...'
S_OB = '['
S_CB = ']'
S_QT = "'"

# Missing field policies.
S_error = 'error'
S_null = 'null'

# Option names.
S_missing = 'missing'
S_maxdepth = 'maxdepth'

# General strings.
S_array = 'array'
S_boolean = 'boolean'
S_number = 'number'
S_object = 'object'
S_string = 'string'
S_MT = ''
S_FS = '/'

# Default recursion limit (template nesting plus source traversal).
MAXDEPTH = 200


# The standard undefined value for this language.
UNDEF = None

# Marks a path branch that matched nothing (distinct from JSON null).
ABSENT = object()


class ReshapeError(ValueError):
    """
    Base class of all transform errors. The path is the location of the
    failing node in the template, as a list of keys and indexes.
    """
    def __init__(self, msg: str, path: Optional[List[Any]] = None) -> None:
        self.msg = msg
        self.path = [] if path is None else list(path)
        if 0 < len(self.path):
            msg = msg + ' (at ' + pathify(self.path) + ')'
        super().__init__(msg)


class PathError(ReshapeError):
    "A path expression could not be resolved."


class MissingFieldError(PathError):
    "A path segment names a field that does not exist."
    def __init__(
        self,
        expr: str,
        field: str,
        node: Any,
        path: Optional[List[Any]] = None
    ) -> None:
        self.expr = expr
        self.field = field
        super().__init__(
            f"Failed to resolve path {expr}; couldn't find field name {field} " +
            f"in {typify(node)} {stringify(node, 44)}",
            path
        )


class TransformError(ReshapeError):
    "The template cannot be applied to the source."


class SpreadTypeMismatchError(TransformError):
    "A spread field did not resolve to a list."


class SpreadLengthMismatchError(TransformError):
    "Spread fields of one array conversion resolved to lists of different sizes."


class NoSpreadTargetError(TransformError):
    "An array conversion has no spread field."


class TemplateSyntaxError(TransformError):
    "A template key or node is malformed."


class DepthExceededError(TransformError):
    "The recursion limit was reached."


class Decoration(NamedTuple):
    "The markers of a template key, and the key without them."
    name: str
    convert: bool = False   # Key was "[name]".
    spread: bool = False    # Key was "...name".


class Resolved(NamedTuple):
    "A resolved path: a single located value, or a flattened list."
    value: Any
    flat: bool = False


class RenderState:
    """
    Render state used for recursive rendering of a template.
    """
    def __init__(
        self,
        source: Any,                  # Source document, never modified.
        path: List[Any],              # Location of the current template node.
        depth: int = 0,               # Current recursion depth.
        maxdepth: int = MAXDEPTH,     # Recursion limit.
        missing: str = S_error,       # Missing field policy: error, null.
        spreads: Optional[Dict[Tuple[Any, ...], Any]] = None,  # Spread values of a copy.
        base: int = 0                 # Path length of the enclosing conversion.
    ) -> None:
        self.source = source
        self.path = path
        self.depth = depth
        self.maxdepth = maxdepth
        self.missing = missing
        self.spreads = spreads
        self.base = base

        if self.maxdepth < self.depth:
            raise DepthExceededError(
                f"Maximum template depth {self.maxdepth} exceeded", self.path)

    def child(self, key: Any) -> 'RenderState':
        """Create the state of a child node of the current node."""
        return RenderState(
            source=self.source,
            path=self.path + [key],
            depth=self.depth + 1,
            maxdepth=self.maxdepth,
            missing=self.missing,
            spreads=self.spreads,
            base=self.base
        )

    def scope(self, spreads: Optional[Dict[Tuple[Any, ...], Any]] = None) -> 'RenderState':
        """Start a new array conversion scope at the current node."""
        return RenderState(
            source=self.source,
            path=self.path,
            depth=self.depth,
            maxdepth=self.maxdepth,
            missing=self.missing,
            spreads=spreads,
            base=len(self.path)
        )

    def loc(self) -> Tuple[Any, ...]:
        """Location of the current node relative to the enclosing conversion."""
        return tuple(self.path[self.base:])


def isnode(val: Any = UNDEF) -> bool:
    "Value is a node - defined, and a map (hash) or list (array)."
    return isinstance(val, (dict, list))


def ismap(val: Any = UNDEF) -> bool:
    "Value is a defined map (hash) with string keys."
    return isinstance(val, dict)


def islist(val: Any = UNDEF) -> bool:
    "Value is a defined list (array) with integer keys (indexes)."
    return isinstance(val, list)


def isscalar(val: Any = UNDEF) -> bool:
    "Value is a leaf - null, boolean, number or string."
    return not isnode(val)


def isliteral(val: Any = UNDEF) -> bool:
    "Value is a literal template leaf, wrapped in single quotes: 'text'."
    return isinstance(val, str) and 2 <= len(val) and \
        val.startswith(S_QT) and val.endswith(S_QT)


def literal(val: Any = UNDEF) -> Any:
    "The text of a literal template leaf, without its quotes."
    return val[1:-1] if isliteral(val) else val


def ispath(val: Any = UNDEF) -> bool:
    "Value is a path expression template leaf: /a/b/c."
    return isinstance(val, str) and val.startswith(S_FS) and not isliteral(val)


def typify(value: Any = UNDEF) -> str:
    if value is UNDEF:
        return S_null
    if isinstance(value, bool):
        return S_boolean
    if isinstance(value, (int, float)):
        return S_number
    if isinstance(value, str):
        return S_string
    if isinstance(value, list):
        return S_array
    return S_object


def getprop(val: Any = UNDEF, key: Any = UNDEF, alt: Any = UNDEF) -> Any:
    """
    Safely get a property of a node. Undefined arguments return undefined.
    If the key is not found, return the alternative value.
    """
    if UNDEF == val or UNDEF == key:
        return alt

    out = alt

    if ismap(val):
        out = val.get(str(key), alt)

    elif islist(val):
        try:
            key = int(key)
        except (ValueError, TypeError):
            return alt

        if 0 <= key < len(val):
            out = val[key]

    if UNDEF == out:
        return alt

    return out


def clone(val: Any = UNDEF):
    """
    Clone a JSON-like data structure. Scalars are shared, nodes are copied.
    """
    if ismap(val):
        return {k: clone(v) for k, v in val.items()}
    elif islist(val):
        return [clone(v) for v in val]
    return val


def stringify(val: Any, maxlen: int = UNDEF):
    "Safely stringify a value for printing (NOT JSON!)."

    valstr = S_MT

    if UNDEF == val:
        return S_null

    if isinstance(val, str):
        valstr = val
    else:
        try:
            valstr = json.dumps(val, sort_keys=True, separators=(',', ':'))
            valstr = valstr.replace('"', '')
        except (TypeError, ValueError):
            valstr = str(val)

    if maxlen is not UNDEF:
        json_len = len(valstr)
        valstr = valstr[:maxlen]

        if 3 < maxlen < json_len:
            valstr = valstr[:maxlen - 3] + '...'

    return valstr


def jsonify(val: Any = UNDEF, flags: Dict[str, Any] = None) -> str:
    """
    Convert a value to a formatted JSON string. Non-ASCII text is kept as is.
    """
    indent = getprop(flags, 'indent', 2)
    if 0 == indent:
        indent = UNDEF

    return json.dumps(
        val,
        indent=indent,
        ensure_ascii=False,
        separators=(',', ': ') if indent else (',', ':')
    )


def pathify(path: Any = UNDEF) -> str:
    "Human-friendly version of a template location: /[order]/...ids."
    if not islist(path):
        return f"<unknown-path:{stringify(path, 47)}>"

    if 0 == len(path):
        return "<root>"

    return S_FS + S_FS.join(str(p) for p in path)


def parsepath(path: Any, where: Optional[List[Any]] = None) -> List[str]:
    """
    Split a path expression into its segments. A list of segments is
    returned as a copy. The expression "/" refers to the source root.
    """
    if islist(path):
        return [str(p) for p in path]

    if not isinstance(path, str) or not path.startswith(S_FS):
        raise PathError(
            f"Invalid path expression {stringify(path, 44)}; " +
            "paths should look like \"/example/path\"",
            where
        )

    parts = path[1:].split(S_FS)
    if [S_MT] == parts:
        return []

    return parts


def parsekey(key: str, where: Optional[List[Any]] = None) -> Decoration:
    """
    Parse the decorations of a template key.
    - "[name]" marks an object to convert into a list.
    - "...name" marks a spread field of the enclosing conversion.
    Both may be combined, as "...[name]" or "[...name]".
    """
    name = key
    convert = False
    spread = False

    if name.startswith(S_SPREAD):
        spread = True
        name = name[len(S_SPREAD):]

    if name.startswith(S_OB) or name.endswith(S_CB):
        if len(name) < 2 or not (name.startswith(S_OB) and name.endswith(S_CB)):
            raise TemplateSyntaxError(
                "Bad key format; array convertible objects notation " +
                f"should look like \"[example_key]\": {key}",
                where
            )
        convert = True
        name = name[1:-1]

        if not spread and name.startswith(S_SPREAD):
            spread = True
            name = name[len(S_SPREAD):]

    if (convert or spread) and S_MT == name:
        raise TemplateSyntaxError(f"Bad key format; decorated key has no name: {key}", where)

    return Decoration(name, convert, spread)


def _options(opts: Any) -> Dict[str, Any]:
    if isinstance(opts, RenderState):
        return {S_missing: opts.missing, S_maxdepth: opts.maxdepth}

    if UNDEF != opts and not ismap(opts):
        raise ValueError(f"Invalid options: expected object, found {typify(opts)}")

    missing = getprop(opts, S_missing, S_error)
    if missing not in (S_error, S_null):
        raise ValueError(
            f"Invalid option {S_missing}: {stringify(missing)} " +
            f"(expected {S_error} or {S_null})")

    maxdepth = getprop(opts, S_maxdepth, MAXDEPTH)
    if isinstance(maxdepth, bool) or not isinstance(maxdepth, int) or maxdepth < 1:
        raise ValueError(
            f"Invalid option {S_maxdepth}: {stringify(maxdepth)} " +
            "(expected a positive integer)")

    return {S_missing: missing, S_maxdepth: maxdepth}


def resolve(source: Any, path: Any, opts: Any = UNDEF) -> Resolved:
    """
    Resolve a path expression against the source.

    Map keys are looked up segment by segment. When a list is met with
    segments remaining, the rest of the path is applied to every element
    and the results are concatenated in element order, so that
    "/order/shipments/items/quantity" yields one flat list across all
    shipments and items. Missing fields inside such a fan-out contribute
    nothing; outside one they fail (or give null, if opts.missing is
    "null"). A path that ends on a list returns that list whole. A scalar
    reached with segments left over is the result, except inside a
    fan-out, where it contributes nothing.

    The opts may be an options map or a RenderState.
    """
    state = opts if isinstance(opts, RenderState) else UNDEF
    options = _options(opts)
    where = state.path if state else UNDEF
    depth = state.depth if state else 0

    parts = parsepath(path, where)
    expr = path if isinstance(path, str) else S_FS + S_FS.join(parts)

    try:
        found, flat = _resolve(source, parts, 0, False, expr, options, where, depth)

        # Outside a fan-out a branch is never absent (it would have failed).
        return Resolved(clone(found), flat)
    except RecursionError as err:
        raise _recursion_error(where) from err


def _resolve(node, parts, pI, fanout, expr, options, where, depth):
    if options[S_maxdepth] < depth:
        raise DepthExceededError(
            f"Maximum depth {options[S_maxdepth]} exceeded resolving {expr}", where)

    if len(parts) == pI:
        return node, False

    if islist(node):
        out = []
        for elem in node:
            found, _ = _resolve(elem, parts, pI, True, expr, options, where, depth + 1)
            if found is ABSENT:
                continue
            if islist(found):
                out.extend(found)
            else:
                out.append(found)
        return out, True

    # A scalar ends the path, remaining segments are ignored.
    if isscalar(node):
        return (ABSENT, True) if fanout else (node, False)

    part = parts[pI]

    if part in node:
        return _resolve(node[part], parts, pI + 1, fanout, expr, options, where, depth + 1)

    if fanout:
        return ABSENT, True

    if S_null == options[S_missing]:
        return UNDEF, False

    raise MissingFieldError(expr, part, node, where)


def render(source: Any, template: Any, opts: Any = UNDEF) -> Any:
    """
    Render a template node. The opts may be an options map or the
    RenderState of the node (used for recursive rendering).
    """
    if isinstance(opts, RenderState):
        state = opts
    else:
        options = _options(opts)
        state = RenderState(
            source=source,
            path=[],
            maxdepth=options[S_maxdepth],
            missing=options[S_missing]
        )

    try:
        return _render(template, state)
    except RecursionError as err:
        raise _recursion_error(state.path) from err


def _recursion_error(where):
    return DepthExceededError(
        "Maximum recursion depth exceeded; reduce nesting or maxdepth", where)


def _render(tval, state):
    if ismap(tval):
        return _render_map(tval, state)

    elif islist(tval):
        return [_render(v, state.child(i)) for i, v in enumerate(tval)]

    elif isliteral(tval):
        return literal(tval)

    elif ispath(tval):
        return resolve(state.source, tval, state).value

    return tval


def _render_map(tval, state):
    out = {}

    for key, val in tval.items():
        dec = parsekey(key, state.path + [key])
        cstate = state.child(key)

        if dec.name in out:
            raise TemplateSyntaxError(f"Duplicate output key {dec.name}", cstate.path)

        # Spread fields of the current conversion copy take their element.
        if dec.spread and state.spreads is not UNDEF and cstate.loc() in state.spreads:
            out[dec.name] = state.spreads[cstate.loc()]

        elif dec.convert:
            out[dec.name] = zipobj(val, cstate)

        else:
            out[dec.name] = _render(val, cstate)

    return out


def zipobj(tval: Any, state: RenderState) -> List[Any]:
    """
    Convert an object template into a list of objects, one for each
    element of its spread fields. All spread fields (at any depth, but
    not inside nested conversions) must resolve to lists of the same
    size. In each generated object a spread field holds one element of
    its list; every other field is rendered as usual, so it is the same
    in every object.
    """
    key = state.path[-1] if 0 < len(state.path) else S_MT

    if not ismap(tval):
        raise TemplateSyntaxError(
            f"Array convertible field {key} should be an object, " +
            f"but found {typify(tval)}: {stringify(tval, 44)}",
            state.path
        )

    zstate = state.scope()

    found = []
    _scanspreads(tval, (), found, zstate)

    if 0 == len(found):
        raise NoSpreadTargetError(
            f"An array convertible object {key} is detected " +
            "but no spread array field was found",
            state.path
        )

    size = UNDEF
    first = UNDEF
    lists = {}

    for loc, skey, sval in found:
        sstate = zstate
        for part in loc:
            sstate = sstate.child(part)

        # A spread field is rendered outside of any copy.
        sstate = sstate.scope()
        dec = parsekey(skey, sstate.path)
        seq = zipobj(sval, sstate) if dec.convert else _render(sval, sstate)

        if not islist(seq):
            raise SpreadTypeMismatchError(
                f"Spread field {skey} should resolve to an array, " +
                f"but found {typify(seq)}: {stringify(seq, 44)}",
                sstate.path
            )

        if UNDEF == size:
            size = len(seq)
            first = sstate.path
        elif len(seq) != size:
            raise SpreadLengthMismatchError(
                f"Spread field {skey} has {len(seq)} elements, but " +
                f"{pathify(first)} has {size}",
                sstate.path
            )

        lists[loc] = seq

    log.debug('array conversion %s: %d spread field(s) of length %d',
              pathify(state.path), len(lists), size)

    out = []
    for i in range(size):
        spreads = {loc: seq[i] for loc, seq in lists.items()}
        out.append(_render_map(tval, zstate.scope(spreads)))

    return out


def _scanspreads(val, loc, found, state):
    if state.maxdepth < state.depth + len(loc):
        raise DepthExceededError(
            f"Maximum template depth {state.maxdepth} exceeded", state.path + list(loc))

    if ismap(val):
        for key, child in val.items():
            dec = parsekey(key, state.path + list(loc) + [key])
            if dec.spread:
                found.append((loc + (key,), key, child))

            # Nested conversions collect their own spread fields.
            elif not dec.convert:
                _scanspreads(child, loc + (key,), found, state)

    elif islist(val):
        for i, child in enumerate(val):
            _scanspreads(child, loc + (i,), found, state)


def transform(source: Any, template: Any, opts: Any = UNDEF) -> Any:
    """
    Transform the source into the structure of the template.
    The source and template are not modified.

    Options (all optional):
    - missing: "error" (default) or "null", for missing fields.
    - maxdepth: recursion limit (default 200).
    """
    return render(source, template, opts)


def transform_many(source: Any, templates: Any, opts: Any = UNDEF) -> List[Any]:
    """
    Transform the source with each of a list of named templates. A named
    template is an object whose first key is the name of the output.
    """
    if not islist(templates):
        raise TemplateSyntaxError("templates should be a list of objects")

    out = []
    for tI, template in enumerate(templates):
        if not ismap(template):
            raise TemplateSyntaxError(
                f"template list elements should be objects: {stringify(template, 44)}",
                [tI])

        if 0 == len(template):
            raise TemplateSyntaxError(
                f"failed to get the name of the template: {stringify(template)}", [tI])

        log.debug('transform %s', next(iter(template)))
        out.append(transform(source, template, opts))

    return out


# Bundle of utility functions, as used by the test runner.
class ReshapeUtility:
    def __init__(self):
        self.clone = clone
        self.getprop = getprop
        self.isliteral = isliteral
        self.islist = islist
        self.ismap = ismap
        self.isnode = isnode
        self.ispath = ispath
        self.isscalar = isscalar
        self.jsonify = jsonify
        self.literal = literal
        self.parsekey = parsekey
        self.parsepath = parsepath
        self.pathify = pathify
        self.render = render
        self.resolve = resolve
        self.stringify = stringify
        self.transform = transform
        self.transform_many = transform_many
        self.typify = typify
        self.zipobj = zipobj


__all__ = [
    'Decoration',
    'DepthExceededError',
    'MissingFieldError',
    'NoSpreadTargetError',
    'PathError',
    'RenderState',
    'ReshapeError',
    'ReshapeUtility',
    'Resolved',
    'SpreadLengthMismatchError',
    'SpreadTypeMismatchError',
    'TemplateSyntaxError',
    'TransformError',
    'clone',
    'getprop',
    'isliteral',
    'islist',
    'ismap',
    'isnode',
    'ispath',
    'isscalar',
    'jsonify',
    'literal',
    'parsekey',
    'parsepath',
    'pathify',
    'render',
    'resolve',
    'stringify',
    'transform',
    'transform_many',
    'typify',
    'zipobj',
]
