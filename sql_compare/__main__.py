"""Allow running sql-compare with `python -m sql_compare`."""

from sql_compare.main import main

raise SystemExit(main())
