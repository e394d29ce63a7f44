from pw_agent.cli import main

main()
