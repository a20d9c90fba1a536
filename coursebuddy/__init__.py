"""CourseBuddy Scheduler - weekly timetable planning for UBC students."""
