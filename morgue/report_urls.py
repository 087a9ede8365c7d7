from django.urls import path
from . import report_views

app_name = 'reports'

urlpatterns = [
    path('overview/', report_views.overview, name='overview'),
    path('bodies/', report_views.bodies_report, name='bodies'),
    path('autopsies/', report_views.autopsies_report, name='autopsies'),
    path('tasks/', report_views.tasks_report, name='tasks'),
    path('releases/', report_views.releases_report, name='releases'),
    path('storage/', report_views.storage_report, name='storage'),
    path('performance/', report_views.performance, name='performance'),
]
