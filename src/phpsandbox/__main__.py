from phpsandbox.cli import main

main()
