from rate_compare.cli import main

raise SystemExit(main())
