from backend_trustscan.cli import main

raise SystemExit(main())
