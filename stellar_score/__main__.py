"""Entry point wrapper for ``python -m stellar_score``.

Execution is forwarded to :func:`stellar_score.cli.main` so ``python -m
stellar_score`` and the installed ``stellar-score`` console script behave
identically.

Example
-------
::

    python -m stellar_score --id vega --ra 279.23 --dec 38.78 --mag 0.03 \
        --temp 9602 --json vega.json
"""

from .cli import main

if __name__ == "__main__":
    main()
