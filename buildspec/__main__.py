from buildspec.cli import main

main()
