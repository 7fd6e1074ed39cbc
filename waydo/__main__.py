from waydo.launcher import main

raise SystemExit(main())
