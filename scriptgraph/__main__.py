from scriptgraph.cmdline import main

main()
