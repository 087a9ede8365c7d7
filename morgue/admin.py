from django.contrib import admin
from .models import StorageUnit, Body, Autopsy, Task, BodyRelease
from .utils import generate_tag_id


class AutopsyInline(admin.TabularInline):
    model = Autopsy
    extra = 0
    fk_name = 'body'
    readonly_fields = ['completed_date', 'assigned_by']
    fields = ['pathologist', 'scheduled_date', 'status', 'completed_date', 'assigned_by']


class BodyReleaseInline(admin.TabularInline):
    model = BodyRelease
    extra = 0
    readonly_fields = ['requested_by', 'approved_by', 'approved_date']
    fields = ['receiver_name', 'relationship', 'status', 'requested_by', 'approved_by', 'approved_date']


@admin.register(StorageUnit)
class StorageUnitAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'location', 'temperature', 'status', 'assigned_body']
    list_filter = ['type', 'status']
    search_fields = ['name', 'location']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Body)
class BodyAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'tag_id', 'gender', 'age', 'date_of_death', 'storage', 'status', 'created_at']
    list_filter = ['status', 'gender', 'date_of_death']
    search_fields = ['full_name', 'tag_id', 'next_of_kin_name']
    readonly_fields = ['tag_id', 'created_at', 'updated_at', 'registered_by', 'released_at']
    inlines = [AutopsyInline, BodyReleaseInline]

    fieldsets = (
        ('Deceased Details', {
            'fields': ('tag_id', 'full_name', 'age', 'gender', 'date_of_death', 'intake_time', 'death_certificate')
        }),
        ('Next of Kin', {
            'fields': ('next_of_kin_name', 'next_of_kin_relationship', 'next_of_kin_phone', 'next_of_kin_address')
        }),
        ('Storage & Status', {
            'fields': ('storage', 'status', 'notes')
        }),
        ('System Information', {
            'fields': ('released_at', 'created_at', 'updated_at', 'registered_by'),
            'classes': ('collapse',)
        })
    )

    def save_model(self, request, obj, form, change):
        if not change:
            obj.tag_id = generate_tag_id()
            obj.registered_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(Autopsy)
class AutopsyAdmin(admin.ModelAdmin):
    list_display = ['body', 'pathologist', 'scheduled_date', 'status', 'completed_date']
    list_filter = ['status', 'scheduled_date']
    search_fields = ['body__full_name', 'body__tag_id', 'pathologist__name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['title', 'type', 'assigned_to', 'priority', 'status', 'due_date']
    list_filter = ['type', 'priority', 'status']
    search_fields = ['title', 'assigned_to__name', 'body__tag_id']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(BodyRelease)
class BodyReleaseAdmin(admin.ModelAdmin):
    list_display = ['body', 'receiver_name', 'relationship', 'status', 'requested_by', 'requested_date', 'approved_by']
    list_filter = ['status', 'requested_date']
    search_fields = ['body__full_name', 'body__tag_id', 'receiver_name', 'receiver_id']
    readonly_fields = ['requested_date', 'approved_date', 'created_at', 'updated_at']
