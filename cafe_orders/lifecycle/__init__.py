"""
Order lifecycle: Placed -> In Preparation -> Completed.

- **states**: Status enum, durations, countdown formatting
- **engine**: Transitions, pause/resume, overrides, prep time
- **scheduler**: Deadline timers with cancel tokens
- **observer**: Per-view local state kept in sync with the order store
- **sync**: Staff-visible record of writes that could not be saved
"""
