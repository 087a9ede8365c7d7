from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    path('', views.user_collection, name='user_list'),
    path('stats/overview/', views.user_stats, name='user_stats'),
    path('<uuid:pk>/', views.user_detail, name='user_detail'),
]
