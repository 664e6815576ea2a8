from arborscope.cli import main

main()
