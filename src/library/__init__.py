"""Library management API.

User authentication plus a book catalog with borrow, reserve and return
workflows, served over FastAPI and persisted with SQLModel.
"""

__version__ = "0.1.0"
