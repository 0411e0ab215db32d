from django.urls import path
from .views import login, logout, me, refresh_token, user_directory, delete_user

urlpatterns = [
    path('auth/login/', login, name='login'),
    path('auth/logout/', logout, name='logout'),
    path('auth/me/', me, name='me'),
    path('auth/refresh-token/', refresh_token, name='refresh_token'),
    path('users/', user_directory, name='user-directory'),
    path('users/<int:user_id>/', delete_user, name='delete-user'),
]

"""
Authentication Error Codes (0x10-0x3F)
--------------------------------------
0x10 - Missing email/password (login)
0x11 - Invalid credentials (login)
0x20 - Missing/invalid auth token
0x21 - Expired/invalid token
0x30 - Missing required fields
0x31 - Invalid user role
0x32 - Email already exists

Request Format Error Codes (0x60-0x6F)
--------------------------------------
0x61 - Invalid JSON data
0x62 - Unsupported Content-Type

Access Error Codes (0x70-0x7F)
------------------------------
0x70 - Role not permitted for this resource
0x73 - Outside the caller's scope (no view for the role, or another school)

Data Error Codes (0x80-0xFF)
----------------------------
0x80 - Record not found
0x81 - Validation failed (see "details")
0x82 - Invalid filter parameter
0xFF - Unknown error
"""
