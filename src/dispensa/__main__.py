from dispensa.cli import main

main()
