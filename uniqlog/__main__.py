from uniqlog.cli import main

main()
