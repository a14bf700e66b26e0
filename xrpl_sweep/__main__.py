from xrpl_sweep.cli import main

raise SystemExit(main())
