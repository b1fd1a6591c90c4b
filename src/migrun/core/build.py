"""Build-mode flag gating development-only replay.

``DEBUG_BUILD`` is bound to the interpreter's ``__debug__`` constant, which
the compiler fixes when the program starts: it is ``True`` for an ordinary
development run and ``False`` when the interpreter runs optimized
(``python -O`` or ``PYTHONOPTIMIZE=1``). Production deployments run
optimized, so ``Debug`` and ``NuclearDebug`` migrations behave exactly like
``Normal`` ones there.

There is no setting, environment variable or argument that turns replay back
on inside an optimized interpreter.
"""

from typing import Final

DEBUG_BUILD: Final[bool] = __debug__

__all__ = ["DEBUG_BUILD"]
