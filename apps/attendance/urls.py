from django.urls import path
from . import views, api

app_name = 'attendance'

urlpatterns = [
    path('', views.my_attendance_view, name='my_attendance'),
    path('action/', views.attendance_action_view, name='attendance_action'),
    path('manage/', views.attendance_dashboard_view, name='dashboard'),
    path('<int:pk>/note/', views.attendance_note_view, name='attendance_note'),
    path('leave/', views.leave_request_view, name='leave_request'),
    path('leave/manage/', views.leave_manage_view, name='leave_manage'),
    path('leave/<int:pk>/decide/', views.leave_decide_view, name='leave_decide'),

    # JSON API for the attendance widget
    path('api/today/', api.TodayView.as_view(), name='api_today'),
    path('api/check-in/', api.CheckInView.as_view(), name='api_check_in'),
    path('api/check-out/', api.CheckOutView.as_view(), name='api_check_out'),
    path('api/lunch/start/', api.LunchStartView.as_view(), name='api_lunch_start'),
    path('api/lunch/end/', api.LunchEndView.as_view(), name='api_lunch_end'),
    path('api/history/', api.HistoryView.as_view(), name='api_history'),
]
