from airdropper.cli import main

main()
