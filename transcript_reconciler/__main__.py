"""Package entry point for ``python -m transcript_reconciler``.

WHY: Users run the reconciler as
``python -m transcript_reconciler transcript.txt --timings words.json``.
Python's ``-m`` flag looks for ``__main__.py`` inside the package and
executes it.

HOW: Delegates to the CLI's main() function.
"""

from transcript_reconciler.cli import main

if __name__ == "__main__":
    main()
