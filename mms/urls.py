from django.contrib import admin
from django.urls import include, path

from . import views

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/health/', views.health, name='health'),
    path('api/auth/', include('users.auth_urls')),
    path('api/users/', include('users.urls')),
    path('api/', include('morgue.urls')),
    path('api/reports/', include('morgue.report_urls')),
    path('api/notifications/', include('comms.urls')),
]

handler404 = 'mms.views.handler404'
handler500 = 'mms.views.handler500'
