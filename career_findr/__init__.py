"""
Career Findr
Multi-role career portal connecting students to courses and jobs.

Architecture:
- MongoDB: Every document (users, jobs, announcements, notifications, chats, events)
- Change streams: Live feeds pushed to clients over WebSockets
- JWT: Stateless sign-in for students, institutes, companies and admins
"""

__version__ = "1.0.0"
