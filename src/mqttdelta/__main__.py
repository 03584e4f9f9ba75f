from mqttdelta.cli import main

raise SystemExit(main())
