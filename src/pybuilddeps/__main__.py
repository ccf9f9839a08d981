from pybuilddeps.cli import main

main()
