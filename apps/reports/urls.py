from django.urls import path
from . import views

app_name = 'reports'

urlpatterns = [
    path('', views.reports_index_view, name='index'),
    path('disbursements/', views.disbursement_report_view, name='disbursements'),
    path('performance/', views.performance_report_view, name='performance'),
    path('attendance/', views.attendance_report_view, name='attendance'),
]
