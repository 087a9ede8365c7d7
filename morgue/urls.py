from django.urls import path
from . import views

app_name = 'morgue'

urlpatterns = [
    # Bodies
    path('bodies/', views.body_collection, name='body_list'),
    path('bodies/stats/overview/', views.body_stats, name='body_stats'),
    path('bodies/<uuid:pk>/', views.body_detail, name='body_detail'),

    # Storage units
    path('storage/', views.storage_collection, name='storage_list'),
    path('storage/stats/capacity/', views.storage_stats, name='storage_stats'),
    path('storage/stats/overview/', views.storage_stats, name='storage_overview'),
    path('storage/available/', views.storage_available, name='storage_available'),
    path('storage/<uuid:pk>/', views.storage_detail, name='storage_detail'),
    path('storage/<uuid:pk>/status/', views.storage_status, name='storage_status'),

    # Autopsies
    path('autopsies/', views.autopsy_collection, name='autopsy_list'),
    path('autopsies/stats/overview/', views.autopsy_stats, name='autopsy_stats'),
    path('autopsies/<uuid:pk>/', views.autopsy_detail, name='autopsy_detail'),

    # Tasks
    path('tasks/', views.task_collection, name='task_list'),
    path('tasks/stats/overview/', views.task_stats, name='task_stats'),
    path('tasks/overdue/', views.task_overdue, name='task_overdue'),
    path('tasks/<uuid:pk>/', views.task_detail, name='task_detail'),

    # Releases
    path('releases/', views.release_collection, name='release_list'),
    path('releases/stats/overview/', views.release_stats, name='release_stats'),
    path('releases/<uuid:pk>/', views.release_detail, name='release_detail'),
    path('releases/<uuid:pk>/status/', views.release_status, name='release_status'),
]
