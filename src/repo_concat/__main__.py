from repo_concat.cli import main

raise SystemExit(main())
