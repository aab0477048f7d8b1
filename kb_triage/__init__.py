"""AI issue triage: summarise reports, open tickets, publish knowledge-base articles."""
