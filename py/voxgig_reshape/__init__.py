# voxgig_reshape init

from .voxgig_reshape import (
    Decoration,
    DepthExceededError,
    MissingFieldError,
    NoSpreadTargetError,
    PathError,
    RenderState,
    ReshapeError,
    ReshapeUtility,
    Resolved,
    SpreadLengthMismatchError,
    SpreadTypeMismatchError,
    TemplateSyntaxError,
    TransformError,
    clone,
    getprop,
    isliteral,
    islist,
    ismap,
    isnode,
    ispath,
    isscalar,
    jsonify,
    literal,
    parsekey,
    parsepath,
    pathify,
    render,
    resolve,
    stringify,
    transform,
    transform_many,
    typify,
    zipobj
)


__version__ = '0.1.0'

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
