"""iCalendar parsing, recurrence expansion and occurrence selection."""
