"""
Schemas module - typed records for stored documents and API request/response bodies.

Records (UserAccount, JobPosting, Notification, Chat, ...) describe what lives
in MongoDB; request and response schemas are the API contract.
"""
