from met_tracker.main import main

main()
