"""
URL configuration for the solar console backend.

All JSON APIs live under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Axiso Green Energies Admin Panel"
admin.site.site_title = "Axiso Green Energies Admin Portal"
admin.site.index_title = "Welcome to the Axiso Green Energies Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.projects.urls')),
    path('api/v1/', include('backend.reports.urls')),
    path('api/v1/', include('backend.receipts.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
