from django.urls import path
from . import views

app_name = 'leads'

urlpatterns = [
    path('', views.lead_list_view, name='lead_list'),
    path('create/', views.lead_create_view, name='lead_create'),
    path('tasks/', views.follow_up_list_view, name='follow_up_list'),
    path('<int:pk>/', views.lead_detail_view, name='lead_detail'),
    path('<int:pk>/edit/', views.lead_edit_view, name='lead_edit'),
    path('<int:pk>/delete/', views.lead_delete_view, name='lead_delete'),
    path('<int:pk>/assign/', views.lead_assign_view, name='lead_assign'),
    path('<int:pk>/change-status/', views.lead_change_status_view, name='lead_change_status'),
    path('<int:pk>/transfer-kyc/', views.lead_transfer_kyc_view, name='lead_transfer_kyc'),
    path('<int:pk>/kyc/', views.lead_kyc_update_view, name='lead_kyc_update'),
    path('<int:pk>/kyc/claim/', views.lead_kyc_claim_view, name='lead_kyc_claim'),
    path('<int:pk>/disburse/', views.lead_disburse_view, name='lead_disburse'),
    path('<int:pk>/add-note/', views.lead_add_note_view, name='lead_add_note'),
    path('note/<int:note_id>/delete/', views.note_delete_view, name='note_delete'),
    path('<int:pk>/log-call/', views.lead_log_call_view, name='lead_log_call'),
    path('<int:pk>/follow-up/', views.lead_schedule_follow_up_view, name='lead_schedule_follow_up'),
    path('follow-up/<int:pk>/complete/', views.follow_up_complete_view, name='follow_up_complete'),
    path('<int:pk>/whatsapp/', views.lead_whatsapp_view, name='lead_whatsapp'),
    path('<int:pk>/activities/', views.lead_activities_view, name='lead_activities'),
    path('<int:pk>/json/', views.lead_json_view, name='lead_json'),
    path('bulk-actions/', views.lead_bulk_actions_view, name='lead_bulk_actions'),
    path('export/', views.lead_export_view, name='lead_export'),
    path('import/', views.lead_import_view, name='lead_import'),
    path('import/template/', views.lead_import_template_view, name='lead_import_template'),
    path('logins/', views.login_list_view, name='login_list'),
    path('logins/<int:pk>/attempt/', views.login_add_attempt_view, name='login_add_attempt'),
]
