from django.urls import path
from . import views


app_name = 'core'

urlpatterns = [
    path('', views.dashboard_view, name='dashboard'),
    path('offices/', views.office_list_view, name='office_list'),
    path('offices/create/', views.office_create_view, name='office_create'),
    path('offices/<int:pk>/edit/', views.office_edit_view, name='office_edit'),
    path('offices/<int:pk>/delete/', views.office_delete_view, name='office_delete'),
    path('notifications/', views.notification_list_view, name='notification_list'),
    path('notifications/<int:pk>/read/', views.notification_read_view, name='notification_read'),
    path('notifications/read-all/', views.notification_read_all_view, name='notification_read_all'),
]
