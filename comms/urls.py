from django.urls import path
from . import views

app_name = 'comms'

urlpatterns = [
    path('', views.notification_collection, name='notification_list'),
    path('unread/count/', views.unread_count, name='unread_count'),
    path('read-all/', views.mark_all_read, name='mark_all_read'),
    path('<uuid:pk>/', views.notification_detail, name='notification_detail'),
    path('<uuid:pk>/read/', views.mark_read, name='mark_read'),
]
