from korn.cli.app import main

main()
