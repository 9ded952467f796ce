# Routes package init
"""
QPaperHub Backend — API Routes Package
========================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - saved_papers.py: POST /api/save-paper, POST /api/unsave-paper,
                       GET  /api/saved-papers/{user_id}
    - users.py:        POST /api/createUser, POST /api/loginUser
    - papers.py:       POST /api/upload, GET /api/questionpapers/...,
                       GET  /api/papers, PUT /api/update/{paper_id},
                       DELETE /api/delete/{drive_file_id}, GET /api/files/{object_id}
    - subjects.py:     GET/PUT /api/subjects/{branch}/{semester}, GET /api/subjects
    - health.py:       GET  /health

Routes are thin: they extract request data, call a service and wrap the
result in the ApiResponse envelope. Errors propagate to the global handlers
registered in main.py.
"""
