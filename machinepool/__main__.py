from machinepool.cli import main

raise SystemExit(main())
