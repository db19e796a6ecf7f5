## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from . import system
from .library import HostLibrary


def load_builtins_library() -> HostLibrary:
    lib = HostLibrary()

    for scope, name, fn in system.__operations__:
        lib.add_operation(scope, name, fn)

    lib.ensure_consistent()
    return lib
