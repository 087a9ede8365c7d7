from django.urls import path
from . import views

app_name = 'auth'

urlpatterns = [
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),
    path('verify/', views.verify_view, name='verify'),
    path('csrf/', views.csrf_view, name='csrf'),
    path('change-password/', views.change_password, name='change_password'),
]
