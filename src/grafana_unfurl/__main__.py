from grafana_unfurl.cli import main

main()
