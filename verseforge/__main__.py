from .utils import main

raise SystemExit(main())
